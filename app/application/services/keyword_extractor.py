"""Search keyword extraction for form records.

Keywords are computed at write time and stored on the record; searches match
query tokens against the stored set. Pure token collection: no stemming,
stop words or language awareness.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

# Title/description words must be longer than this; form number and tags are kept whole.
MIN_WORD_LENGTH = 3

# Fields whose change requires the stored keyword set to be recomputed.
KEYWORD_SOURCE_FIELDS = frozenset({
    "title",
    "description",
    "tags",
    "form_number",
    "category",
    "line_of_business",
})


def _words(text: str | None) -> set[str]:
    if not text:
        return set()
    return {w for w in text.lower().split() if len(w) >= MIN_WORD_LENGTH}


def _value(v: Any) -> str | None:
    if v is None:
        return None
    if isinstance(v, Enum):
        v = v.value
    return str(v).lower() or None


def extract_keywords(
    title: str | None,
    form_number: str | None,
    description: str | None = None,
    tags: Iterable[str] | None = None,
    category: Any = None,
    line_of_business: Any = None,
) -> frozenset[str]:
    """Return the deduplicated lowercase keyword set for a form.

    Args:
        title: Split on whitespace; words of 3+ characters kept.
        form_number: Added whole (not tokenized).
        description: Split on whitespace; words of 3+ characters kept.
        tags: Each tag added whole, lowercased, regardless of length.
        category: Enum or string value, lowercased.
        line_of_business: Enum or string value, lowercased.

    Returns:
        Frozen set of keyword tokens.
    """
    keywords = _words(title)
    if form_number:
        keywords.add(form_number.lower())
    keywords |= _words(description)
    for tag in tags or ():
        if tag:
            keywords.add(tag.lower())
    for extra in (_value(category), _value(line_of_business)):
        if extra:
            keywords.add(extra)
    return frozenset(keywords)


def keywords_for(fields: Mapping[str, Any]) -> frozenset[str]:
    """Keyword set from a mapping keyed by FormRecord field names (e.g. a merged record)."""
    return extract_keywords(
        title=fields.get("title"),
        form_number=fields.get("form_number"),
        description=fields.get("description"),
        tags=fields.get("tags"),
        category=fields.get("category"),
        line_of_business=fields.get("line_of_business"),
    )


def tokenize_query(text: str) -> list[str]:
    """Split a search string into unique lowercase tokens, preserving first-seen order."""
    seen: dict[str, None] = {}
    for token in text.lower().split():
        seen.setdefault(token, None)
    return list(seen)
