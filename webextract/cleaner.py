"""
Boilerplate stripping for parsed documents.

These helpers mutate the tree they are given, so callers hand them a tree
parsed for a single query (see ``PageSnapshot.evaluate``).
"""

import re
from typing import Iterable, Optional

from selectolax.parser import HTMLParser, Node

SELECTORS_TO_REMOVE = [
    "script",
    "style",
    "noscript",
    "svg",
    "iframe",
    "nav",
    "header",
    "footer",
    "aside",
    ".advertisement",
    ".ads",
    ".ad-container",
    ".sidebar",
    ".navigation",
    ".menu",
    ".cookie-banner",
    ".cookie-consent",
    ".popup",
    ".modal",
    ".newsletter-signup",
    ".social-share",
    ".comments",
    "#comments",
    ".related-posts",
    ".recommended",
    '[role="banner"]',
    '[role="navigation"]',
    '[role="complementary"]',
    '[aria-hidden="true"]',
]

HIDDEN_SELECTORS = [
    '[style*="display: none"]',
    '[style*="display:none"]',
    "[hidden]",
]

MAIN_CONTENT_SELECTORS = [
    "main",
    "article",
    '[role="main"]',
    ".post-content",
    ".article-content",
    ".entry-content",
    ".content",
    ".post",
    "#content",
    "#main-content",
    ".main-content",
    ".page-content",
]

PRUNABLE_TAGS = {"div", "span", "p"}
MEDIA_SELECTOR = "img, video, iframe"


def remove_selectors(tree: HTMLParser, selectors: Iterable[str]) -> int:
    """Decompose every node matching any of ``selectors``; returns the count."""
    removed = 0
    for selector in selectors:
        # Re-query after each removal so no freed descendant is touched.
        node = tree.css_first(selector)
        while node is not None:
            node.decompose()
            removed += 1
            node = tree.css_first(selector)
    return removed


def prune_empty(node: Optional[Node]) -> None:
    """Post-order removal of div/span/p elements with no text and no media."""
    if node is None:
        return
    child = node.child
    while child is not None:
        following = child.next
        prune_empty(child)
        child = following
    if node.tag in PRUNABLE_TAGS and not node.text(strip=True) and node.css_first(MEDIA_SELECTOR) is None:
        node.decompose()


def strip_boilerplate(tree: HTMLParser, selectors: Iterable[str] = SELECTORS_TO_REMOVE) -> HTMLParser:
    """Remove navigation, ads, hidden and empty elements in place."""
    remove_selectors(tree, selectors)
    remove_selectors(tree, HIDDEN_SELECTORS)
    prune_empty(tree.body)
    return tree


def find_main_content(tree: HTMLParser) -> Optional[Node]:
    """First element matching a main-content selector, else ``<body>``."""
    for selector in MAIN_CONTENT_SELECTORS:
        node = tree.css_first(selector)
        if node is not None:
            return node
    return tree.body


def clean_text(text: str) -> str:
    """Collapse blank-line runs, tabs and repeated spaces."""
    text = re.sub(r"\n{3,}", "\n\n", text or "")
    text = re.sub(r"\t+", " ", text)
    text = re.sub(r"[ ]{2,}", " ", text)
    return text.strip()
