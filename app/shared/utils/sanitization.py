"""Cleaning of user-supplied form text, file names and identifiers."""

import html
import re

import nh3

# Form ids, user ids and client-chosen upload ids.
_IDENTIFIER = re.compile(r"^[a-zA-Z0-9_-]{1,128}$")
_UNSAFE_FILE_CHARS = re.compile(r"[^a-zA-Z0-9_-]")

# Bounds decoding of nested entity encodings (&amp;lt; and deeper).
_MAX_CLEAN_PASSES = 5


def strip_markup(value: str) -> str:
    """Drop every HTML tag and decode entities, so "Auto &amp; Home" reads "Auto & Home".

    Decoding can expose markup that arrived entity-encoded, so cleaning repeats
    until the text is stable. A stable result has no tags left for nh3 to strip.
    """
    if not value:
        return value
    text = value
    for _ in range(_MAX_CLEAN_PASSES):
        decoded = html.unescape(nh3.clean(text, tags=set(), attributes={}))
        if decoded == text:
            return text
        text = decoded
    # Still changing after the last pass: keep nh3's escaped output.
    return nh3.clean(text, tags=set(), attributes={})


def safe_file_stem(value: str) -> str:
    """Replace characters outside [A-Za-z0-9_-] with underscores (storage object names)."""
    return _UNSAFE_FILE_CHARS.sub("_", value)


def validate_identifier(value: str) -> str:
    """Return value unchanged if it is a safe id; raise ValueError otherwise.

    Ids become Firestore document names and storage path segments, so
    slashes and dots are refused.
    """
    if not value or not _IDENTIFIER.match(value):
        raise ValueError("Invalid identifier format")
    return value
