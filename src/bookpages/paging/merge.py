"""Attach header-only fragments to the content that follows them."""

from __future__ import annotations

from collections.abc import Iterable

from bookpages.markup.tree import TreeFactory
from bookpages.paging.classify import is_header_like, parse_fragment
from bookpages.paging.models import PagingRules

OPENING_CLASS = "chapter-opening"


def wrap_headers(fragments: list[str]) -> str:
    """Wrap buffered header fragments in a single container element."""

    return f'<div class="{OPENING_CLASS}">{"".join(fragments)}</div>'


def merge_headers(
    fragments: Iterable[str],
    rules: PagingRules | None = None,
    *,
    parse: TreeFactory = parse_fragment,
) -> list[str]:
    """Fold runs of header-like fragments into the next content fragment.

    Headers left over at the end of the book become one trailing unit.
    """

    active_rules = rules or PagingRules()
    merged: list[str] = []
    pending: list[str] = []

    for fragment in fragments:
        if is_header_like(fragment, active_rules, parse=parse):
            pending.append(fragment)
            continue
        if pending:
            merged.append(wrap_headers(pending) + fragment)
            pending = []
        else:
            merged.append(fragment)

    if pending:
        merged.append(wrap_headers(pending))
    return merged
