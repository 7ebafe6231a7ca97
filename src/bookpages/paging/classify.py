"""Structural classification of cleaned fragments."""

from __future__ import annotations

import re

from bookpages.markup.tree import HEADING_TAGS, MarkupTree, SoupTree, TreeFactory
from bookpages.paging.models import PagingRules

TITLE_CONTAINER_TAGS = frozenset({"div", "section", "header", "hgroup", "aside", "p"})
_TITLE_TOKEN_RE = re.compile(r"title|heading|header|toc|contents")
_MAX_HEADER_CHILDREN = 2


def parse_fragment(fragment: str) -> MarkupTree:
    return SoupTree(fragment)


def top_level_count(fragment: str, *, parse: TreeFactory = parse_fragment) -> int:
    return len(parse(fragment).children_of())


def has_title_tokens(tokens: list[str]) -> bool:
    return any(_TITLE_TOKEN_RE.search(token) for token in tokens)


def is_header_like_tree(tree: MarkupTree, rules: PagingRules) -> bool:
    children = tree.children_of()
    if not children or len(children) > _MAX_HEADER_CHILDREN:
        return False

    first = children[0]
    name = tree.name_of(first)
    if name in HEADING_TAGS:
        return True
    if name in TITLE_CONTAINER_TAGS and has_title_tokens(tree.tokens_of(first)):
        return True
    return len(children) == 1 and len(tree.text_of()) < rules.header_text_limit


def is_header_like(fragment: str, rules: PagingRules, *, parse: TreeFactory = parse_fragment) -> bool:
    """Return True when a fragment is mostly a heading or title block."""

    return is_header_like_tree(parse(fragment), rules)
