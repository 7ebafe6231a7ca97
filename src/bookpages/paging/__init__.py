"""Merge and pagination passes over cleaned fragments."""

from .classify import is_header_like
from .merge import merge_headers
from .models import Page, PagingRules
from .paginate import paginate, split_oversized

__all__ = ["Page", "PagingRules", "is_header_like", "merge_headers", "paginate", "split_oversized"]
