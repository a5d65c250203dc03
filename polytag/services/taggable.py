"""Hooks a host entity type calls around its own persistence to carry tags.

A host keeps one :class:`TaggingContext` per unit of work and calls the matching
:class:`TaggableHooks` method before and after each create, update, and read::

    ctx = TaggingContext("posts")
    data = hooks.before_create(ctx, {"title": "Hello", "tags": ["news", "Tech"]})
    post = Post(**data); db.add(post); db.flush()
    hooks.after_create(ctx, post.id, db)
    db.commit()
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from sqlalchemy import ColumnElement, Select
from sqlalchemy.orm import Session

from polytag.services.normalize import parse_tags
from polytag.services.tag_scope import ScopeMode, TagScope, combine_scopes
from polytag.services.tag_store import TagStore
from polytag.services.types import TagInput

logger = logging.getLogger(__name__)

TAGS_FIELD = "tags"


class TaggingContext:
    """Per-host tagging state: pending tags, pending scopes, and the type label."""

    def __init__(self, tag_type: str) -> None:
        if not tag_type:
            raise ValueError("tag_type must be a non-empty string")
        self.tag_type = tag_type
        # None means no tags field was seen, so after-update leaves tags alone.
        self.tags: list[TagInput] | None = None
        self.scopes: list[TagScope] = []
        self.include_tags = False

    def with_tags(self) -> TaggingContext:
        """Attach tags to the records of the next read."""
        self.include_tags = True
        return self

    def with_any_tags(self, names: Iterable[object]) -> TaggingContext:
        self.scopes.append(TagScope(names, self.tag_type, ScopeMode.ANY))
        return self.with_tags()

    def with_all_tags(self, names: Iterable[object]) -> TaggingContext:
        self.scopes.append(TagScope(names, self.tag_type, ScopeMode.ALL))
        return self.with_tags()

    def set_tags(self, raw: object) -> TaggingContext:
        self.tags = parse_tags(raw)
        return self.with_tags()


class TaggableHooks:
    def __init__(self, store: TagStore | None = None) -> None:
        self.store = store or TagStore()

    def _extract(self, ctx: TaggingContext, data: dict[str, Any]) -> dict[str, Any]:
        if TAGS_FIELD not in data:
            return data
        data = dict(data)
        ctx.set_tags(data.pop(TAGS_FIELD))
        return data

    def before_create(self, ctx: TaggingContext, data: dict[str, Any]) -> dict[str, Any]:
        """Move a ``tags`` field out of *data* into *ctx*; returns the field map to insert."""
        return self._extract(ctx, data)

    def after_create(self, ctx: TaggingContext, new_id: int, db: Session) -> None:
        if ctx.tags is None:
            return
        self.store.create_tags(ctx.tags, new_id, ctx.tag_type, db)
        ctx.tags = None

    def before_update(self, ctx: TaggingContext, data: dict[str, Any]) -> dict[str, Any]:
        return self._extract(ctx, data)

    def after_update(self, ctx: TaggingContext, ids: int | Iterable[int], db: Session) -> None:
        """Replace the tags of every updated id.

        All ids share the caller's transaction; orphan cleanup runs once at the end.
        """
        if ctx.tags is None:
            return
        if isinstance(ids, int):
            ids = [ids]
        for entity_id in ids:
            self.store.update_tags(ctx.tags, entity_id, ctx.tag_type, db, cleanup=False)
        self.store.cleanup_tags(db)
        ctx.tags = None

    def before_read(
        self, ctx: TaggingContext, stmt: Select, pk_column: ColumnElement, db: Session
    ) -> Select:
        """Restrict *stmt* to entities matching any pending scope, then clear the scopes."""
        if not ctx.scopes:
            return stmt
        scopes, ctx.scopes = ctx.scopes, []
        logger.debug("Applying %d tag scope(s) to %s read", len(scopes), ctx.tag_type)
        clause = combine_scopes(scopes, pk_column, db)
        return stmt if clause is None else stmt.where(clause)

    def after_read(
        self, ctx: TaggingContext, records: Sequence[Any], db: Session, pk_attr: str = "id"
    ) -> Sequence[Any]:
        """Set ``record.tags`` on each record when tags were requested."""
        if not ctx.include_tags or not records:
            return records

        if len(records) == 1:
            record = records[0]
            record.tags = self.store.get_by_id(getattr(record, pk_attr), ctx.tag_type, db)
        else:
            ids = [getattr(r, pk_attr) for r in records]
            tags = self.store.get_by_ids(ids, ctx.tag_type, db)
            for record in records:
                record.tags = tags.get(getattr(record, pk_attr), [])

        ctx.include_tags = False
        return records
