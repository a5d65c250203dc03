"""Tag store: owns every write to the tags and taggable tables.

The store never commits: callers wrap write-path calls in their own transaction so
a failed batch leaves nothing half-written.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence

from sqlalchemy import ColumnElement, and_, delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from polytag.models.tag import Tag
from polytag.models.taggable import taggable
from polytag.services.normalize import dedupe_by_name, normalize
from polytag.services.types import InvalidTagError, TagInput, TagUsage

logger = logging.getLogger(__name__)


def _orphan_clause() -> ColumnElement[bool]:
    return Tag.id.not_in(select(taggable.c.tag_id).distinct())


class TagStore:
    # --- write path -------------------------------------------------------

    def find_or_create_id(self, tag: TagInput | str, db: Session) -> int:
        """Return the id of the tag with *tag*'s slug, inserting it if absent.

        The insert runs in a SAVEPOINT. If a concurrent writer committed the same
        slug first, the unique constraint fires and we re-read the winner's row.
        """
        tag = TagInput.from_raw(tag)
        if not tag.slug:
            raise InvalidTagError(f"Tag name {tag.name!r} is empty after normalization")

        tag_id = self._find_id_by_slug(tag.slug, db)
        if tag_id is not None:
            return tag_id

        try:
            with db.begin_nested():
                row = Tag(name=tag.name, slug=tag.slug)
                db.add(row)
                db.flush()
                tag_id = row.id
        except IntegrityError:
            tag_id = self._find_id_by_slug(tag.slug, db)
            if tag_id is None:
                raise
            logger.info("Lost insert race for tag %r; using existing id %d", tag.slug, tag_id)
            return tag_id

        logger.debug("Created tag %r with id %d", tag.slug, tag_id)
        return tag_id

    def create_tag(self, tag: TagInput | str, entity_id: int, entity_type: str, db: Session) -> int:
        """Link one tag to (*entity_id*, *entity_type*) and return its tag id."""
        tag_id = self.find_or_create_id(tag, db)
        db.execute(
            insert(taggable).values(
                tag_id=tag_id, taggable_id=entity_id, taggable_type=entity_type
            )
        )
        return tag_id

    def create_tags(
        self, tags: Iterable[object], entity_id: int, entity_type: str, db: Session
    ) -> None:
        for tag in dedupe_by_name(tags):
            self.create_tag(tag, entity_id, entity_type, db)

    def update_tags(
        self,
        tags: Iterable[object],
        entity_id: int,
        entity_type: str,
        db: Session,
        cleanup: bool = True,
    ) -> None:
        """Replace all tags of (*entity_id*, *entity_type*) with *tags*.

        Pass ``cleanup=False`` when updating many entities and call
        :meth:`cleanup_tags` once at the end.
        """
        db.execute(
            delete(taggable).where(
                taggable.c.taggable_id == entity_id,
                taggable.c.taggable_type == entity_type,
            )
        )
        self.create_tags(tags, entity_id, entity_type, db)
        if cleanup:
            self.cleanup_tags(db)

    def cleanup_tags(self, db: Session) -> int:
        """Delete tags no join row references, across every taggable type.

        Returns the number of deleted rows.
        """
        result = db.execute(delete(Tag.__table__).where(_orphan_clause()))
        deleted: int = result.rowcount or 0
        if deleted:
            logger.info("Removed %d orphaned tag(s)", deleted)
        return deleted

    def count_orphans(self, db: Session) -> int:
        return db.scalar(select(func.count()).select_from(Tag).where(_orphan_clause())) or 0

    # --- read path --------------------------------------------------------

    def _find_id_by_slug(self, slug: str, db: Session) -> int | None:
        return db.scalar(select(Tag.id).where(Tag.slug == slug))

    def find_by_names(self, names: Iterable[object], db: Session) -> list[Tag]:
        """Return existing tags matching *names* (compared by slug). Unknown names are dropped."""
        slugs = {normalize(n) for n in names} - {""}
        if not slugs:
            return []
        return list(db.scalars(select(Tag).where(Tag.slug.in_(slugs)).order_by(Tag.id)))

    def _fetch_tags(self, tag_ids: Iterable[int], db: Session) -> dict[int, Tag]:
        ids = set(tag_ids)
        if not ids:
            return {}
        return {t.id: t for t in db.scalars(select(Tag).where(Tag.id.in_(ids)))}

    def get_by_id(self, entity_id: int, entity_type: str, db: Session) -> list[Tag]:
        """Return the tags of one entity, oldest tag first."""
        tag_ids = db.scalars(
            select(taggable.c.tag_id).where(
                taggable.c.taggable_id == entity_id,
                taggable.c.taggable_type == entity_type,
            )
        ).all()
        if not tag_ids:
            return []
        tags = self._fetch_tags(tag_ids, db)
        return [tags[i] for i in sorted(set(tag_ids)) if i in tags]

    def get_by_ids(
        self, entity_ids: Sequence[int], entity_type: str, db: Session
    ) -> dict[int, list[Tag]]:
        """Return ``{entity_id: [Tag, ...]}`` for a batch of entities in two queries.

        Entities without tags are absent from the result. A join row whose tag was
        removed by a concurrent cleanup is skipped.
        """
        if not entity_ids:
            return {}

        rows = db.execute(
            select(taggable.c.taggable_id, taggable.c.tag_id)
            .where(
                taggable.c.taggable_id.in_(set(entity_ids)),
                taggable.c.taggable_type == entity_type,
            )
            .order_by(taggable.c.taggable_id, taggable.c.tag_id)
        ).all()
        if not rows:
            return {}

        tags = self._fetch_tags((row.tag_id for row in rows), db)

        result: dict[int, list[Tag]] = defaultdict(list)
        for row in rows:
            tag = tags.get(row.tag_id)
            if tag is None:
                continue
            bucket = result[row.taggable_id]
            if not bucket or bucket[-1].id != tag.id:
                bucket.append(tag)
        return dict(result)

    def list_with_counts(self, db: Session, taggable_type: str | None = None) -> list[TagUsage]:
        """Return every tag with its link count, most used first."""
        join_on = Tag.id == taggable.c.tag_id
        if taggable_type is not None:
            join_on = and_(join_on, taggable.c.taggable_type == taggable_type)
        n = func.count(taggable.c.tag_id)
        rows = db.execute(
            select(Tag.name, Tag.slug, n.label("n"))
            .outerjoin(taggable, join_on)
            .group_by(Tag.id, Tag.name, Tag.slug)
            .order_by(n.desc(), Tag.name.asc())
        ).all()
        return [TagUsage(name=row.name, slug=row.slug, count=row.n) for row in rows]
