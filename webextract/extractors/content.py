"""
General page content: headings, paragraphs, links, tables, code blocks, lists.
"""

import re
from typing import Any, Dict, List
from urllib.parse import urljoin, urlparse

from selectolax.parser import HTMLParser

from ..cleaner import strip_boilerplate
from ..exceptions import ExtractorError
from ..models import ExtractionPlan, Target
from ..page import PageSnapshot, block_text, iter_tags, node_text

MIN_PARAGRAPH_CHARS = 20
MIN_CODE_CHARS = 10
HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")

_LANGUAGE_RE = re.compile(r"language-(\w+)")
_WORD_RE = re.compile(r"(\w+)")


def _class_of(node) -> str:
    return node.attributes.get("class") or ""


def code_language(node, default: str = "plaintext") -> str:
    """Language hint from a ``language-xxx`` class, else the first class word."""
    classes = _class_of(node)
    match = _LANGUAGE_RE.search(classes) or _WORD_RE.search(classes)
    return match.group(1) if match else default


def _headings(tree: HTMLParser) -> List[Dict[str, Any]]:
    headings = []
    for index, node in enumerate(iter_tags(tree.body, HEADING_TAGS)):
        headings.append({
            "level": int(node.tag[1]),
            "text": node_text(node),
            "id": node.attributes.get("id") or f"heading-{index}",
        })
    return headings


def _paragraphs(tree: HTMLParser) -> List[str]:
    paragraphs = []
    for node in tree.css("p"):
        text = node_text(node)
        if len(text) > MIN_PARAGRAPH_CHARS:
            paragraphs.append(text)
    return paragraphs


def _links(tree: HTMLParser, page_url: str) -> List[Dict[str, Any]]:
    hostname = urlparse(page_url).hostname or ""
    links = []
    for node in tree.css("a[href]"):
        raw = (node.attributes.get("href") or "").strip()
        text = node_text(node)
        if not raw or not text or raw.startswith(("javascript:", "#")):
            continue
        href = urljoin(page_url, raw)
        links.append({
            "url": href,
            "text": text,
            "isExternal": hostname not in href,
            "title": node.attributes.get("title") or None,
        })
    return links


def extract_tables(tree: HTMLParser) -> List[Dict[str, Any]]:
    tables = []
    for index, table in enumerate(tree.css("table")):
        headers = [node_text(th) for th in table.css("th")]
        rows = []
        for tr in table.css("tbody tr"):
            row = [node_text(td) for td in tr.css("td")]
            if row:
                rows.append(row)
        if headers or rows:
            tables.append({"index": index, "headers": headers, "rows": rows})
    return tables


def _code_blocks(tree: HTMLParser) -> List[Dict[str, Any]]:
    blocks = []
    for index, node in enumerate(tree.css("pre, code")):
        # <code> inside <pre> is already covered by the <pre> itself
        if node.tag == "code" and node.parent is not None and node.parent.tag == "pre":
            continue
        text = block_text(node)
        if len(text) <= MIN_CODE_CHARS:
            continue
        language = code_language(node, default="")
        if not language and node.tag == "pre":
            inner = node.css_first("code")
            language = code_language(inner, default="") if inner is not None else ""
        blocks.append({"index": index, "language": language or "plaintext", "code": text})
    return blocks


def _lists(tree: HTMLParser) -> List[Dict[str, Any]]:
    lists = []
    for node in tree.css("ul, ol"):
        items = [node_text(li) for li in node.iter() if li.tag == "li"]
        if items:
            lists.append({"type": node.tag, "items": items})
    return lists


def query_content(
    tree: HTMLParser,
    page_url: str,
    include_links: bool = True,
    include_tables: bool = True,
    include_code: bool = True,
) -> Dict[str, Any]:
    """Collect content categories from a boilerplate-stripped document."""
    if tree.body is None:
        raise ExtractorError("Document has no body")
    strip_boilerplate(tree)
    return {
        "headings": _headings(tree),
        "paragraphs": _paragraphs(tree),
        "links": _links(tree, page_url) if include_links else [],
        "tables": extract_tables(tree) if include_tables else [],
        "codeBlocks": _code_blocks(tree) if include_code else [],
        "lists": _lists(tree),
    }


async def extract_content(
    page: PageSnapshot,
    include_links: bool = True,
    include_tables: bool = True,
    include_code: bool = True,
) -> Dict[str, Any]:
    return await page.evaluate(query_content, page.final_url, include_links, include_tables, include_code)


async def content_module(page: PageSnapshot, plan: ExtractionPlan) -> Dict[str, Any]:
    """Content views selected by the plan's option flags and targets."""
    options = plan.options
    content = await page.evaluate(
        query_content,
        page.final_url,
        options.include_links,
        options.include_tables,
        options.include_code,
    )

    data: Dict[str, Any] = {}
    if options.include_headings:
        data["headings"] = content["headings"]
    if options.include_links:
        data["links"] = content["links"]
    if options.include_tables:
        data["tables"] = content["tables"]
    if options.include_lists:
        data["lists"] = content["lists"]

    if options.include_main_content:
        data["paragraphs"] = content["paragraphs"]
        data["text_content"] = "\n\n".join(content["paragraphs"])

    if plan.has_target(Target.ALL.value):
        data["content"] = content

    # Pricing pages also get the raw tables and paragraphs
    if plan.has_target(Target.PRICING.value, Target.PLANS.value):
        data["tables"] = content["tables"]
        data["paragraphs"] = content["paragraphs"]

    return data


async def extract_links(page: PageSnapshot) -> List[Dict[str, Any]]:
    """Every followable link on the page, navigation included."""
    return await page.evaluate(_links, page.final_url)
