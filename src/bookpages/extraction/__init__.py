"""Archive reading interfaces."""

from .archive import ArchiveReader
from .models import ArchiveError, ExtractionFailure, ExtractionResult, FailureKind

__all__ = ["ArchiveError", "ArchiveReader", "ExtractionFailure", "ExtractionResult", "FailureKind"]
