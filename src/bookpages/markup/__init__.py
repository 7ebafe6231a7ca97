"""Markup tree capability and the display sanitizer."""

from .sanitizer import Sanitizer, SanitizerRules
from .tree import MarkupTree, SoupTree

__all__ = ["MarkupTree", "Sanitizer", "SanitizerRules", "SoupTree"]
