"""Greedy pagination of merged units under a character budget."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
import logging

from bookpages.markup.tree import MarkupTree, Node, TreeFactory
from bookpages.paging.classify import is_header_like, is_header_like_tree, parse_fragment
from bookpages.paging.models import Page, PagingRules

logger = logging.getLogger(__name__)

# Block containers the splitter may open when one of them alone is over budget.
SPLITTABLE_CONTAINERS = frozenset(
    {"div", "section", "article", "main", "body", "blockquote", "aside", "header", "footer"}
)


@dataclass(slots=True)
class _PageBuffer:
    chunks: list[str] = field(default_factory=list)
    length: int = 0
    split: bool = False

    @property
    def html(self) -> str:
        return "".join(self.chunks)

    def add(self, chunk: str, *, split: bool = False) -> None:
        self.chunks.append(chunk)
        self.length += len(chunk)
        self.split = self.split or split

    def clear(self) -> None:
        self.chunks = []
        self.length = 0
        self.split = False

    def flush_into(self, pages: list[Page]) -> None:
        if self.chunks and self.html.strip():
            pages.append(Page(chunks=tuple(self.chunks), split=self.split))
        self.clear()


def _split_pieces(tree: MarkupTree, node: Node, max_length: int) -> Iterator[str]:
    markup = tree.serialize(node)
    if len(markup) > max_length and tree.name_of(node) in SPLITTABLE_CONTAINERS:
        inner = tree.children_of(node)
        if any(tree.name_of(child) is not None for child in inner):
            # The container tag itself is not repeated around the pieces.
            for child in inner:
                yield from _split_pieces(tree, child, max_length)
            return
    yield markup


def _pack_children(unit: str, max_length: int, parse: TreeFactory) -> list[str]:
    tree = parse(unit)
    children = tree.children_of()
    if not children:
        return [unit.strip()]

    groups: list[list[str]] = []
    current: list[str] = []
    current_len = 0

    for child in children:
        for markup in _split_pieces(tree, child, max_length):
            if current and current_len + len(markup) > max_length:
                groups.append(current)
                current = []
                current_len = 0
            current.append(markup)
            current_len += len(markup)

    if current:
        groups.append(current)
    return [text for text in ("".join(group).strip() for group in groups) if text]


def split_oversized(unit: str, rules: PagingRules, *, parse: TreeFactory = parse_fragment) -> list[Page]:
    """Split a unit longer than the budget along its children.

    Packing works on top-level children and descends into any block container
    that is over budget by itself. Only a piece with nothing left to open, such
    as one huge paragraph, comes back as a page over the budget. A header-like
    sub-page is folded into the sub-page after it.
    """

    sub_pages = _pack_children(unit, rules.max_length, parse)

    index = 0
    while index < len(sub_pages) - 1:
        if is_header_like(sub_pages[index], rules, parse=parse):
            sub_pages[index : index + 2] = [sub_pages[index] + sub_pages[index + 1]]
            continue
        index += 1

    return [Page(chunks=(text,), split=True) for text in sub_pages]


def _holds_only_headers(buffer: _PageBuffer, rules: PagingRules, parse: TreeFactory) -> bool:
    return bool(buffer.chunks) and is_header_like(buffer.html, rules, parse=parse)


def paginate(units: Iterable[str], rules: PagingRules, *, parse: TreeFactory = parse_fragment) -> list[Page]:
    """Pack merged units into pages of at most `rules.max_length` characters.

    Short and header-like units always join the current page, and a page
    holding only headers is never closed on its own, so a page may run over
    the budget to keep them attached.
    """

    pages: list[Page] = []
    buffer = _PageBuffer()

    for unit in units:
        if not unit.strip():
            continue
        unit_length = len(unit)

        if unit_length > rules.max_length:
            if _holds_only_headers(buffer, rules, parse):
                unit = buffer.html + unit
                buffer.clear()
            else:
                buffer.flush_into(pages)
            sub_pages = split_oversized(unit, rules, parse=parse)
            logger.debug("Split %d-char unit into %d pages", len(unit), len(sub_pages))
            pages.extend(sub_pages[:-1])
            buffer.add(sub_pages[-1].html, split=True)
            continue

        tree = parse(unit)
        child_count = len(tree.children_of())
        if is_header_like_tree(tree, rules) or unit_length < rules.minimum_unit_length(child_count):
            buffer.add(unit)
            continue

        if buffer.length + unit_length > rules.max_length and not _holds_only_headers(buffer, rules, parse):
            buffer.flush_into(pages)
        buffer.add(unit)

    if pages and _holds_only_headers(buffer, rules, parse):
        last = pages.pop()
        pages.append(Page(chunks=last.chunks + tuple(buffer.chunks), split=last.split or buffer.split))
    else:
        buffer.flush_into(pages)
    return pages
