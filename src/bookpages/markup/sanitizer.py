"""Turn raw XHTML spine documents into display-safe fragments."""

from __future__ import annotations

from dataclasses import dataclass
import html
import logging
import re

from bs4.element import Tag

from bookpages.markup.tree import HEADING_TAGS, SoupTree, element_name
from bookpages.normalization import normalize_whitespace, same_heading

logger = logging.getLogger(__name__)

DEFAULT_DISCARD_TAGS = frozenset(
    {
        "img", "image", "svg", "picture", "script", "noscript", "style", "link", "meta",
        "head", "title", "nav", "iframe", "object", "embed", "video", "audio", "canvas",
    }
)
DEFAULT_UNWRAP_TAGS = frozenset(
    {"a", "span", "em", "i", "b", "strong", "font", "u", "s", "small", "big", "mark", "abbr", "cite"}
)

_DOCUMENT_WRAPPERS = frozenset({"html", "body"})
_KEEP_WHEN_EMPTY = frozenset({"br", "hr"})

_BOM = "\ufeff"
_BODY_RE = re.compile(r"<body\b[^>]*>(.*)</body\s*>", re.IGNORECASE | re.DOTALL)
_SPACE_RUN_RE = re.compile(r"\s{2,}")
_BR_RUN_RE = re.compile(r"(?:<br\s*/?>\s*){3,}", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")


@dataclass(frozen=True, slots=True)
class SanitizerRules:
    """Which elements are dropped whole and which are flattened into their parent."""

    discard_tags: frozenset[str] = DEFAULT_DISCARD_TAGS
    unwrap_tags: frozenset[str] = DEFAULT_UNWRAP_TAGS


def _previous_element_sibling(node: Tag) -> Tag | None:
    sibling = node.previous_sibling
    while sibling is not None:
        if isinstance(sibling, Tag):
            return sibling
        if str(sibling).strip():
            return None
        sibling = sibling.previous_sibling
    return None


def _is_duplicate_heading(node: Tag) -> bool:
    if element_name(node) not in HEADING_TAGS:
        return False
    previous = _previous_element_sibling(node)
    if previous is None or element_name(previous) not in HEADING_TAGS:
        return False
    return same_heading(previous.get_text(" "), node.get_text(" "))


def _is_stripped_attribute(name: str) -> bool:
    lowered = name.lower()
    return lowered == "style" or lowered.startswith("on")


def _is_structurally_empty(node: Tag) -> bool:
    if element_name(node) in _KEEP_WHEN_EMPTY:
        return False
    return not node.get_text(strip=True)


class Sanitizer:
    """Strip non-display markup from one spine document.

    `clean` never raises: a document without `<body>` is cleaned as a whole and
    a parser failure degrades to escaped plain text.
    """

    def __init__(self, rules: SanitizerRules | None = None) -> None:
        self._rules = rules or SanitizerRules()

    @property
    def rules(self) -> SanitizerRules:
        return self._rules

    def clean(self, raw_markup: str) -> str:
        fragment = self._body_of(raw_markup)
        try:
            serialized = self._clean_fragment(fragment)
        except Exception:  # noqa: BLE001 - html.parser can choke on broken declarations
            logger.warning("Markup parse failed, falling back to plain text", exc_info=True)
            text = normalize_whitespace(html.unescape(_TAG_RE.sub(" ", fragment)))
            serialized = html.escape(text, quote=False)
        return self._collapse(serialized)

    def _body_of(self, raw_markup: str) -> str:
        text = raw_markup[1:] if raw_markup.startswith(_BOM) else raw_markup
        match = _BODY_RE.search(text)
        if match is None:
            logger.debug("No <body> element found, sanitizing the whole document")
            return text
        return match.group(1)

    def _clean_fragment(self, fragment: str) -> str:
        tree = SoupTree(fragment)
        discard = self._rules.discard_tags
        unwrap = self._rules.unwrap_tags | _DOCUMENT_WRAPPERS

        tree.remove_non_content()
        tree.remove_matching(lambda node: element_name(node) in discard)
        tree.unwrap_matching(lambda node: element_name(node) in unwrap)
        for element in tree.iter_elements():
            for attribute in [name for name in element.attrs if _is_stripped_attribute(name)]:
                del element[attribute]
        tree.remove_matching(_is_structurally_empty)
        tree.remove_matching(_is_duplicate_heading)
        return tree.serialize()

    def _collapse(self, serialized: str) -> str:
        collapsed = _SPACE_RUN_RE.sub(" ", serialized)
        collapsed = _BR_RUN_RE.sub("<br/><br/>", collapsed)
        return collapsed.strip()
