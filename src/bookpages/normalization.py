"""Text helpers for comparing and measuring visible markup text."""

from __future__ import annotations

import re
import unicodedata

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def heading_key(text: str) -> str:
    """Comparison key for heading text.

    Chapter titles repeated by converters often differ only in case, width
    forms (full-width digits, ligatures) or spacing, so all three are folded.
    """

    normalized = unicodedata.normalize("NFKC", text)
    return normalize_whitespace(normalized).casefold()


def same_heading(first: str, second: str) -> bool:
    return heading_key(first) == heading_key(second)
