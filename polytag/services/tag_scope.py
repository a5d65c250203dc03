"""Tag scopes: filter predicates restricting a read to entities carrying tags."""

from __future__ import annotations

import enum
from collections.abc import Iterable

from sqlalchemy import ColumnElement, Select, false, func, or_, select
from sqlalchemy.orm import Session

from polytag.models.taggable import taggable
from polytag.services.normalize import normalize
from polytag.services.tag_store import TagStore


class ScopeMode(enum.Enum):
    ANY = "any"
    ALL = "all"


class TagScope:
    """Match entities of *taggable_type* carrying any/all of *names*."""

    def __init__(
        self,
        names: Iterable[object],
        taggable_type: str,
        mode: ScopeMode = ScopeMode.ANY,
        store: TagStore | None = None,
    ) -> None:
        if isinstance(names, str):
            names = [names]
        self.names = frozenset(str(n) for n in names)
        self.taggable_type = taggable_type
        self.mode = mode
        self.store = store or TagStore()

    def __repr__(self) -> str:
        return f"TagScope({sorted(self.names)!r}, {self.taggable_type!r}, {self.mode.name})"

    def get_tag_ids(self, db: Session) -> set[int]:
        """Resolve the scope's names to existing tag ids.

        Unknown names are dropped. In ALL mode one unknown name empties the
        result, since no entity can carry a tag that does not exist.
        """
        tags = self.store.find_by_names(self.names, db)
        if self.mode is ScopeMode.ALL:
            wanted = {normalize(n) for n in self.names} - {""}
            if {t.slug for t in tags} != wanted:
                return set()
        return {t.id for t in tags}

    def get_query(self, tag_ids: Iterable[int]) -> Select:
        """Return a SELECT of taggable_id values matching this scope."""
        ids = set(tag_ids)
        stmt = select(taggable.c.taggable_id).where(
            taggable.c.tag_id.in_(ids),
            taggable.c.taggable_type == self.taggable_type,
        )
        if self.mode is ScopeMode.ANY:
            return stmt.distinct()
        return stmt.group_by(taggable.c.taggable_id).having(
            func.count(taggable.c.tag_id.distinct()) == len(ids)
        )

    def clause(self, pk_column: ColumnElement, db: Session) -> ColumnElement[bool]:
        tag_ids = self.get_tag_ids(db)
        if not tag_ids:
            return false()
        return pk_column.in_(self.get_query(tag_ids))


def combine_scopes(
    scopes: Iterable[TagScope], pk_column: ColumnElement, db: Session
) -> ColumnElement[bool] | None:
    """OR together every scope's predicate on *pk_column*; None when there are no scopes."""
    clauses = [scope.clause(pk_column, db) for scope in scopes]
    if not clauses:
        return None
    return or_(*clauses)
