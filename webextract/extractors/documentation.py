from typing import Any, Dict, List

from selectolax.parser import HTMLParser

from ..cleaner import find_main_content, strip_boilerplate
from ..exceptions import ExtractorError
from ..models import ExtractionPlan
from ..page import PageSnapshot, block_text, iter_tags, node_text

README_SELECTORS = ('article[itemprop="text"]', ".markdown-body", "#readme")
HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
SECTION_TAGS = HEADING_TAGS + ("p", "pre", "li")


def _root(tree: HTMLParser):
    for selector in README_SELECTORS:
        node = tree.css_first(selector)
        if node is not None:
            return node, "readme"
    strip_boilerplate(tree)
    return find_main_content(tree), "page"


def _sections(root) -> List[Dict[str, Any]]:
    sections: List[Dict[str, Any]] = []
    current: Dict[str, Any] = {"heading": None, "level": 0, "content": []}

    for node in iter_tags(root, SECTION_TAGS):
        if node.tag in HEADING_TAGS:
            if current["heading"] or current["content"]:
                sections.append(current)
            current = {"heading": node_text(node), "level": int(node.tag[1]), "content": []}
        elif node.tag == "pre":
            text = block_text(node)
            if text:
                current["content"].append(text)
        else:
            # <p> inside <li> is picked up by the <li>
            if node.tag == "p" and node.parent is not None and node.parent.tag == "li":
                continue
            text = node_text(node)
            if text:
                current["content"].append(text)

    if current["heading"] or current["content"]:
        sections.append(current)

    return [
        {"heading": s["heading"], "level": s["level"], "content": "\n\n".join(s["content"])}
        for s in sections
    ]


def query_documentation(tree: HTMLParser) -> Dict[str, Any]:
    title_node = tree.css_first("title")
    root, source = _root(tree)
    if root is None:
        raise ExtractorError("Document has no body")

    headings = [
        {"level": int(h.tag[1]), "text": node_text(h)}
        for h in iter_tags(root, HEADING_TAGS)
    ]
    code_blocks = [text for text in (block_text(pre) for pre in root.css("pre")) if text]

    return {
        "title": headings[0]["text"] if headings else (title_node.text(strip=True) if title_node is not None else ""),
        "source": source,
        "headings": headings,
        "sections": _sections(root),
        "codeBlocks": code_blocks,
    }


async def documentation_module(page: PageSnapshot, plan: ExtractionPlan) -> Dict[str, Any]:
    return {"documentation": await page.evaluate(query_documentation)}
