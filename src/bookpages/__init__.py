"""EPUB extraction, sanitizing and pagination for reading clients."""

from .config import PagerSettings
from .service import PageService, PagesResult

__all__ = ["PageService", "PagerSettings", "PagesResult"]
