"""Request-scoped orchestration: archive path in, page window out."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Sequence

from bookpages.config import PagerSettings
from bookpages.extraction.archive import ArchiveReader
from bookpages.extraction.models import ArchiveError, ExtractionFailure, FailureKind
from bookpages.markup.sanitizer import Sanitizer
from bookpages.markup.tree import TreeFactory
from bookpages.paging.classify import parse_fragment
from bookpages.paging.merge import merge_headers
from bookpages.paging.models import Page
from bookpages.paging.paginate import paginate

logger = logging.getLogger(__name__)

_FAILURE_DESCRIPTIONS: dict[FailureKind, str] = {
    FailureKind.ARCHIVE_UNREADABLE: "archive missing or unreadable",
    FailureKind.CONTAINER_MALFORMED: "container descriptor malformed",
    FailureKind.MANIFEST_MALFORMED: "package manifest malformed",
    FailureKind.PATH_REJECTED: "path escapes the library root",
}


@dataclass(frozen=True, slots=True)
class PageRange:
    """Half-open page window with `stop` clamped to the page count."""

    start: int
    stop: int

    @classmethod
    def clamp(cls, start: int, stop: int, total: int) -> "PageRange":
        return cls(start=start, stop=min(stop, total))

    def select(self, pages: Sequence[Page]) -> tuple[Page, ...]:
        if self.start > self.stop:
            return ()
        return tuple(pages[self.start : self.stop])


@dataclass(frozen=True, slots=True)
class PagesResult:
    """Page window plus the numbers a reading client needs to navigate."""

    pages: tuple[Page, ...]
    start: int
    stop: int
    total: int
    failure: ExtractionFailure | None = None

    @classmethod
    def empty(cls, start: int, stop: int, failure: ExtractionFailure | None = None) -> "PagesResult":
        return cls(pages=(), start=start, stop=stop, total=0, failure=failure)

    def to_dict(self, *, chunked: bool = False) -> dict[str, object]:
        pages: list[object]
        if chunked:
            pages = [list(page.chunks) for page in self.pages]
        else:
            pages = [page.html for page in self.pages]
        return {"pages": pages, "from": self.start, "to": self.stop, "total": self.total}


class PageService:
    """Resolve a library-relative path and return a window of its pages.

    Archive problems never escape `get_pages`: every failure kind maps to an
    empty result with `total=0` and the requested bounds echoed back.
    """

    def __init__(
        self,
        settings: PagerSettings,
        *,
        reader: ArchiveReader | None = None,
        sanitizer: Sanitizer | None = None,
        parse: TreeFactory | None = None,
    ) -> None:
        self._settings = settings
        self._rules = settings.paging_rules()
        self._library_root = settings.library_root
        self._reader = reader or ArchiveReader()
        self._sanitizer = sanitizer or Sanitizer()
        self._parse = parse or parse_fragment

    @property
    def library_root(self) -> Path:
        return self._library_root

    def resolve_path(self, relative_path: str) -> Path:
        """Return the absolute archive path, refusing anything outside the library."""

        try:
            candidate = (self._library_root / relative_path).resolve()
        except (OSError, ValueError) as exc:
            raise ArchiveError(FailureKind.PATH_REJECTED, relative_path, f"Path cannot be resolved: {exc}") from exc
        if not candidate.is_relative_to(self._library_root):
            raise ArchiveError(FailureKind.PATH_REJECTED, relative_path, "Path resolves outside the library root")
        return candidate

    def build_pages(self, documents: Sequence[str]) -> list[Page]:
        """Clean, merge and paginate raw spine documents."""

        fragments = [fragment for fragment in (self._sanitizer.clean(doc) for doc in documents) if fragment]
        dropped = len(documents) - len(fragments)
        if dropped:
            logger.debug("Dropped %d spine documents without displayable content", dropped)
        units = merge_headers(fragments, self._rules, parse=self._parse)
        return paginate(units, self._rules, parse=self._parse)

    def get_pages(self, path: str, start: int, stop: int) -> PagesResult:
        try:
            archive_path = self.resolve_path(path)
        except ArchiveError as error:
            return self._failed(ExtractionFailure.from_error(error), start, stop)

        logger.info("Reading EPUB file: %s", archive_path)
        extraction = self._reader.extract(archive_path)
        if extraction.failure is not None:
            return self._failed(extraction.failure, start, stop)

        pages = self.build_pages(extraction.documents)
        window = PageRange.clamp(start, stop, len(pages))
        logger.info("Returning pages %d-%d (total pages: %d)", window.start, window.stop, len(pages))
        return PagesResult(pages=window.select(pages), start=window.start, stop=window.stop, total=len(pages))

    def _failed(self, failure: ExtractionFailure, start: int, stop: int) -> PagesResult:
        logger.error(
            "EPUB parsing failed (%s) for %s: %s",
            _FAILURE_DESCRIPTIONS[failure.kind],
            failure.path,
            failure.message,
        )
        return PagesResult.empty(start, stop, failure)
