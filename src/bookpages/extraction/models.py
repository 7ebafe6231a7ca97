"""Typed extraction outcomes shared by the archive reader and the page service."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class FailureKind(str, Enum):
    """Reasons an archive could not be turned into raw documents."""

    ARCHIVE_UNREADABLE = "archive_unreadable"
    CONTAINER_MALFORMED = "container_malformed"
    MANIFEST_MALFORMED = "manifest_malformed"
    PATH_REJECTED = "path_rejected"


@dataclass(slots=True)
class ArchiveError(Exception):
    """Domain error raised while reading archive structure."""

    kind: FailureKind
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message} (path={self.path})"


@dataclass(frozen=True, slots=True)
class ExtractionFailure:
    kind: FailureKind
    path: str
    message: str

    @classmethod
    def from_error(cls, error: ArchiveError) -> "ExtractionFailure":
        return cls(kind=error.kind, path=error.path, message=error.message)


@dataclass(frozen=True, slots=True)
class PackageManifest:
    """Resolved package descriptor: where the manifest lives, its items and reading order."""

    manifest_path: str
    items: dict[str, str] = field(default_factory=dict)
    spine: tuple[str, ...] = ()

    @property
    def base_dir(self) -> str:
        head, sep, _tail = self.manifest_path.rpartition("/")
        return head + sep


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    """Either the raw spine documents in reading order or the reason there are none."""

    documents: tuple[str, ...] = ()
    failure: ExtractionFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, documents: list[str] | tuple[str, ...]) -> "ExtractionResult":
        return cls(documents=tuple(documents))

    @classmethod
    def failed(cls, failure: ExtractionFailure) -> "ExtractionResult":
        return cls(failure=failure)
