"""Paging thresholds and page records."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MAX_LENGTH = 3000
DEFAULT_HEADER_TEXT_LIMIT = 200
DEFAULT_SHORT_UNIT_CHARS = 500
DEFAULT_STRUCTURED_UNIT_CHARS = 60


@dataclass(frozen=True, slots=True)
class PagingRules:
    """Length budget and the thresholds that decide when units stick together.

    `short_unit_chars` applies to units with at most one top-level child,
    `structured_unit_chars` to units that still have inner structure to split.
    """

    max_length: int = DEFAULT_MAX_LENGTH
    header_text_limit: int = DEFAULT_HEADER_TEXT_LIMIT
    short_unit_chars: int = DEFAULT_SHORT_UNIT_CHARS
    structured_unit_chars: int = DEFAULT_STRUCTURED_UNIT_CHARS

    def __post_init__(self) -> None:
        if self.max_length <= 0:
            raise ValueError("max_length must be positive")
        if self.header_text_limit < 0:
            raise ValueError("header_text_limit cannot be negative")
        if self.short_unit_chars < 0 or self.structured_unit_chars < 0:
            raise ValueError("unit thresholds cannot be negative")

    def minimum_unit_length(self, child_count: int) -> int:
        return self.short_unit_chars if child_count <= 1 else self.structured_unit_chars


@dataclass(frozen=True, slots=True)
class Page:
    """One output page: markup chunks in reading order."""

    chunks: tuple[str, ...]
    split: bool = False

    @property
    def html(self) -> str:
        return "".join(self.chunks)

    @property
    def length(self) -> int:
        return sum(len(chunk) for chunk in self.chunks)
