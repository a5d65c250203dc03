"""taggable association table.

One row links a tag to any host entity, identified by (taggable_id, taggable_type).
"""

from sqlalchemy import Column, ForeignKey, Index, Integer, Table, Text

from polytag.db import Base

taggable = Table(
    "taggable",
    Base.metadata,
    Column("tag_id", Integer, ForeignKey("tags.id"), nullable=False),
    Column("taggable_id", Integer, nullable=False),
    Column("taggable_type", Text, nullable=False),
    Index("idx_taggable_entity", "taggable_type", "taggable_id"),
    Index("idx_taggable_tag", "tag_id"),
)
