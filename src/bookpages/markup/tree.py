"""Markup tree capability used by the sanitizer and the paging passes.

Paging and merge logic only talk to `MarkupTree`; `SoupTree` is the
BeautifulSoup-backed implementation.
"""

from __future__ import annotations

from typing import Callable, Iterator, Protocol, Union, runtime_checkable

from bs4 import BeautifulSoup
from bs4.element import Comment, Declaration, Doctype, NavigableString, PageElement, ProcessingInstruction, Tag

from bookpages.normalization import normalize_whitespace

Node = Union[Tag, NavigableString]
NodePredicate = Callable[[Tag], bool]

HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})

_NON_CONTENT_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)


@runtime_checkable
class MarkupTree(Protocol):
    """Operations the pipeline needs from a parsed markup fragment."""

    def remove_matching(self, predicate: NodePredicate) -> int:
        """Remove every element matching `predicate` with its subtree."""

    def unwrap_matching(self, predicate: NodePredicate) -> int:
        """Replace every element matching `predicate` with its children."""

    def children_of(self, node: Node | None = None) -> list[Node]:
        """Return structural children (elements and non-blank text)."""

    def text_of(self, node: Node | None = None) -> str:
        """Return whitespace-normalized text content."""

    def name_of(self, node: Node) -> str | None:
        """Return the lower-cased local tag name, or None for text."""

    def tokens_of(self, node: Node) -> list[str]:
        """Return lower-cased class and id values of an element."""

    def serialize(self, node: Node | None = None) -> str:
        """Return markup for `node`, or for the whole fragment."""


TreeFactory = Callable[[str], MarkupTree]


def element_name(node: PageElement | None) -> str | None:
    """Local tag name, so `svg:svg` and `svg` compare equal."""

    if not isinstance(node, Tag) or not node.name:
        return None
    return node.name.lower().rpartition(":")[2]


def element_tokens(node: Tag) -> list[str]:
    """Class and id values of an element, lower-cased."""

    tokens: list[str] = []
    classes = node.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    tokens.extend(str(value).lower() for value in classes)
    element_id = node.get("id")
    if element_id:
        tokens.append(str(element_id).lower())
    return tokens


class SoupTree:
    """`MarkupTree` over a BeautifulSoup fragment parsed with `html.parser`."""

    def __init__(self, markup: str) -> None:
        self._soup = BeautifulSoup(markup, "html.parser")

    @property
    def root(self) -> BeautifulSoup:
        return self._soup

    def iter_elements(self) -> Iterator[Tag]:
        """Yield elements in document order."""

        yield from self._soup.find_all(True)

    def remove_matching(self, predicate: NodePredicate) -> int:
        matched = [element for element in self.iter_elements() if predicate(element)]
        removed = 0
        for element in matched:
            # Nested matches go away with their removed ancestor.
            if element.decomposed:
                continue
            element.decompose()
            removed += 1
        return removed

    def unwrap_matching(self, predicate: NodePredicate) -> int:
        matched = [element for element in self.iter_elements() if predicate(element)]
        for element in matched:
            element.unwrap()
        if matched:
            self._soup.smooth()
        return len(matched)

    def remove_non_content(self) -> int:
        """Drop comments, doctypes and processing instructions."""

        strings = [node for node in self._soup.descendants if isinstance(node, _NON_CONTENT_STRINGS)]
        for node in strings:
            node.extract()
        return len(strings)

    def children_of(self, node: Node | None = None) -> list[Node]:
        parent = self._soup if node is None else node
        if not isinstance(parent, Tag):
            return []
        children: list[Node] = []
        for child in parent.children:
            if isinstance(child, Tag):
                children.append(child)
            elif isinstance(child, NavigableString) and not isinstance(child, _NON_CONTENT_STRINGS):
                if child.strip():
                    children.append(child)
        return children

    def text_of(self, node: Node | None = None) -> str:
        target = self._soup if node is None else node
        if isinstance(target, Tag):
            return normalize_whitespace(target.get_text(" "))
        return normalize_whitespace(str(target))

    def name_of(self, node: Node) -> str | None:
        return element_name(node)

    def tokens_of(self, node: Node) -> list[str]:
        return element_tokens(node) if isinstance(node, Tag) else []

    def serialize(self, node: Node | None = None) -> str:
        target = self._soup if node is None else node
        if isinstance(target, Tag):
            return target.decode()
        return target.output_ready(formatter="minimal")
