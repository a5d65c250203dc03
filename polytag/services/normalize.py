"""Tag name normalization.

Slugs are what make two tags "the same": ``normalize`` must stay stable across
releases, otherwise existing rows stop matching new input.
"""

import logging
import re
import unicodedata
from collections.abc import Iterable, Mapping

from polytag.services.types import InvalidTagError, TagInput

logger = logging.getLogger(__name__)

_SEPARATOR = "-"
_NON_WORD_RE = re.compile(r"[\W_]+")
_WHITESPACE_RE = re.compile(r"\s+")


def clean_name(raw: object) -> str:
    """Trim *raw* and collapse internal whitespace; the display form of a tag."""
    return _WHITESPACE_RE.sub(" ", str(raw)).strip()


def normalize(raw: object) -> str:
    """Return the slug for *raw*. Never raises; blank input yields ``""``."""
    text = unicodedata.normalize("NFKC", str(raw)).casefold()
    return _NON_WORD_RE.sub(_SEPARATOR, text).strip(_SEPARATOR)


def dedupe_by_name(items: Iterable[object], strict: bool = False) -> list[TagInput]:
    """Build TagInputs from *items*, keeping the first of each slug in input order.

    Blank names are skipped, or rejected with InvalidTagError when *strict* is set.
    """
    seen: set[str] = set()
    result: list[TagInput] = []
    for item in items:
        tag = TagInput.from_raw(item)
        if not tag.slug:
            if strict:
                raise InvalidTagError(f"Tag name {item!r} is empty after normalization")
            logger.debug("Skipping blank tag %r", item)
            continue
        if tag.slug in seen:
            continue
        seen.add(tag.slug)
        result.append(tag)
    return result


def parse_tags(raw: object, strict: bool = False) -> list[TagInput]:
    """Accept None, a comma-separated string, a single tag record, or an iterable of tag values."""
    if raw is None:
        return []
    if isinstance(raw, str):
        return dedupe_by_name(raw.split(","), strict)
    # A mapping is one tag record, not a collection of names.
    if isinstance(raw, Mapping):
        return dedupe_by_name([raw], strict)
    if isinstance(raw, Iterable):
        return dedupe_by_name(raw, strict)
    return dedupe_by_name([raw], strict)
