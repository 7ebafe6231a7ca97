"""Runtime configuration for the page service."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Mapping

from bookpages.paging.models import (
    DEFAULT_HEADER_TEXT_LIMIT,
    DEFAULT_MAX_LENGTH,
    DEFAULT_SHORT_UNIT_CHARS,
    DEFAULT_STRUCTURED_UNIT_CHARS,
    PagingRules,
)


DEFAULT_LIBRARY_DIR = "library"


def _parse_int(*, name: str, raw_value: str, minimum: int) -> int:
    try:
        value = int(raw_value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


@dataclass(frozen=True, slots=True)
class PagerSettings:
    """Validated library location and paging thresholds."""

    library_dir: Path
    max_length: int = DEFAULT_MAX_LENGTH
    header_text_limit: int = DEFAULT_HEADER_TEXT_LIMIT
    short_unit_chars: int = DEFAULT_SHORT_UNIT_CHARS
    structured_unit_chars: int = DEFAULT_STRUCTURED_UNIT_CHARS

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "PagerSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        library_dir_raw = source.get("BOOKPAGES_LIBRARY_DIR", DEFAULT_LIBRARY_DIR).strip()
        if not library_dir_raw:
            raise ValueError("BOOKPAGES_LIBRARY_DIR cannot be empty")

        numeric_fields = {
            "BOOKPAGES_MAX_LENGTH": (DEFAULT_MAX_LENGTH, 1),
            "BOOKPAGES_HEADER_TEXT_LIMIT": (DEFAULT_HEADER_TEXT_LIMIT, 0),
            "BOOKPAGES_SHORT_UNIT_CHARS": (DEFAULT_SHORT_UNIT_CHARS, 0),
            "BOOKPAGES_STRUCTURED_UNIT_CHARS": (DEFAULT_STRUCTURED_UNIT_CHARS, 0),
        }
        values: dict[str, int] = {}
        for name, (default, minimum) in numeric_fields.items():
            raw_value = source.get(name, str(default)).strip()
            if not raw_value:
                raise ValueError(f"{name} cannot be empty")
            values[name] = _parse_int(name=name, raw_value=raw_value, minimum=minimum)

        return cls(
            library_dir=Path(library_dir_raw),
            max_length=values["BOOKPAGES_MAX_LENGTH"],
            header_text_limit=values["BOOKPAGES_HEADER_TEXT_LIMIT"],
            short_unit_chars=values["BOOKPAGES_SHORT_UNIT_CHARS"],
            structured_unit_chars=values["BOOKPAGES_STRUCTURED_UNIT_CHARS"],
        )

    @property
    def library_root(self) -> Path:
        """Library directory as an absolute path; relative values resolve against cwd."""

        return (Path.cwd() / self.library_dir).resolve()

    def paging_rules(self) -> PagingRules:
        return PagingRules(
            max_length=self.max_length,
            header_text_limit=self.header_text_limit,
            short_unit_chars=self.short_unit_chars,
            structured_unit_chars=self.structured_unit_chars,
        )
