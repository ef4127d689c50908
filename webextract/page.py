"""
Read-only page snapshots that extractor modules query.
"""

import asyncio
from typing import Any, Callable, Optional, TypeVar

from selectolax.parser import HTMLParser

from .exceptions import PageLoadError

T = TypeVar("T")


class PageSnapshot:
    """HTML of a loaded document plus the URL it was loaded from.

    Every ``evaluate`` call parses a fresh tree, so a query function may
    prune its own tree freely and never sees another query's nodes.
    """

    def __init__(self, url: str, html: str, final_url: Optional[str] = None):
        if html is None:
            raise PageLoadError("Page snapshot has no HTML", url=url)
        self.url = url
        self.final_url = final_url or url
        self.html = html

    @classmethod
    async def from_page(cls, page, url: Optional[str] = None) -> "PageSnapshot":
        """Capture the current document of a Playwright page."""
        html = await page.content()
        return cls(url=url or page.url, html=html, final_url=page.url)

    @property
    def title(self) -> str:
        return self.query(_title)

    def tree(self) -> HTMLParser:
        return HTMLParser(self.html)

    def query(self, fn: Callable[..., T], *args: Any) -> T:
        """Run ``fn(tree, *args)`` against a freshly parsed copy of the document."""
        return fn(self.tree(), *args)

    async def evaluate(self, fn: Callable[..., T], *args: Any) -> T:
        """Async form of :meth:`query`; parsing happens in a worker thread."""
        return await asyncio.to_thread(self.query, fn, *args)

    def __repr__(self) -> str:
        return f"PageSnapshot(url={self.url!r}, size={len(self.html)})"


def _title(tree: HTMLParser) -> str:
    node = tree.css_first("title")
    return node.text(strip=True) if node else ""


def node_text(node, strip: bool = True) -> str:
    """Visible text of a node with runs of whitespace collapsed."""
    if node is None:
        return ""
    text = node.text(deep=True, separator=" ", strip=False)
    text = " ".join(text.split()) if strip else text
    return text


def block_text(node) -> str:
    """Text of a node keeping line breaks, for code and preformatted blocks."""
    if node is None:
        return ""
    return node.text(deep=True).strip()


def iter_tags(node, tags):
    """Descendants of ``node`` (itself included) whose tag is in ``tags``, in document order."""
    if node is None:
        return
    for child in node.traverse(include_text=False):
        if child.tag in tags:
            yield child
