"""Shared typed values for the tagging services."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TypedDict


class InvalidTagError(ValueError):
    """Raised when a tag name normalizes to an empty slug."""


@dataclass(frozen=True)
class TagInput:
    """A tag name paired with its slug, ready to be resolved to a tag id."""

    name: str
    slug: str

    @classmethod
    def from_raw(cls, value: object) -> TagInput:
        # Imported here: normalize imports this module.
        from polytag.services.normalize import clean_name, normalize

        if isinstance(value, TagInput):
            return value
        if isinstance(value, Mapping):
            raw = value.get("name", "")
        elif isinstance(value, str):
            raw = value
        else:
            raw = getattr(value, "name", value)
        name = clean_name(raw)
        return cls(name=name, slug=normalize(name))


class TagUsage(TypedDict):
    name: str
    slug: str
    count: int
