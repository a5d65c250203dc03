"""Tags API router."""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from polytag.db import get_session
from polytag.schemas.tag import CleanupResponse, TagSchema, TagsUpdateRequest, TagUsageSchema
from polytag.services.normalize import parse_tags
from polytag.services.tag_store import TagStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
def list_tags(
    taggable_type: str | None = Query(default=None),
    db: Session = Depends(get_session),
) -> dict[str, list[TagUsageSchema]]:
    usage = TagStore().list_with_counts(db, taggable_type=taggable_type)
    return {"tags": [TagUsageSchema(**u) for u in usage]}


@router.post("/cleanup")
def cleanup_tags(db: Session = Depends(get_session)) -> CleanupResponse:
    deleted = TagStore().cleanup_tags(db)
    db.commit()
    return CleanupResponse(deleted=deleted)


@router.get("/{taggable_type}/{taggable_id}")
def get_entity_tags(
    taggable_type: str,
    taggable_id: int,
    db: Session = Depends(get_session),
) -> dict[str, list[TagSchema]]:
    tags = TagStore().get_by_id(taggable_id, taggable_type, db)
    return {"tags": [TagSchema.model_validate(t) for t in tags]}


@router.put("/{taggable_type}/{taggable_id}")
def replace_entity_tags(
    taggable_type: str,
    taggable_id: int,
    body: TagsUpdateRequest,
    db: Session = Depends(get_session),
) -> dict[str, list[TagSchema]]:
    """Replace the tags of one entity. A blank tag name rejects the whole request."""
    new_tags = parse_tags(body.tags, strict=True)
    store = TagStore()
    try:
        store.update_tags(new_tags, taggable_id, taggable_type, db)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Replaced tags of %s %d", taggable_type, taggable_id)
    tags = store.get_by_id(taggable_id, taggable_type, db)
    return {"tags": [TagSchema.model_validate(t) for t in tags]}
