"""
Renderers that turn an ExtractionResult into Markdown, plain text,
a structured outline, or JSON, plus sentence-based text chunking.
"""

import json
import re
from typing import Any, Dict, List, Optional

from .cleaner import clean_text
from .models import ExtractionResult, OutputFormat

MAX_MARKDOWN_LINKS = 20
MAX_TEXT_LINKS = 10
TOC_MIN_HEADINGS = 3

# Categories rendered as JSON blocks because they have no prose form
DATA_SECTIONS = ("pricing", "contact", "product", "structured", "documentation", "code", "videos")

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")


class PageView:
    """Flat view over a result's data for the renderers."""

    def __init__(self, result: ExtractionResult):
        data = result.data
        content = data.content or {}
        metadata = data.metadata or {}

        self.result = result
        self.url = result.url
        self.title = metadata.get("title") or metadata.get("ogTitle") or result.url
        self.headings: List[Dict[str, Any]] = data.headings or content.get("headings") or []
        self.links: List[Dict[str, Any]] = data.links or content.get("links") or []
        self.tables: List[Dict[str, Any]] = data.tables or content.get("tables") or []
        self.lists: List[Dict[str, Any]] = data.lists or content.get("lists") or []
        self.images: List[Dict[str, Any]] = data.images or []
        self.code_blocks: List[Dict[str, Any]] = content.get("codeBlocks") or (data.code or {}).get("codeBlocks") or []

        paragraphs = data.paragraphs or content.get("paragraphs") or []
        self.text_content: str = data.text_content or "\n\n".join(paragraphs)

    def data_sections(self) -> Dict[str, Any]:
        dumped = self.result.data.to_dict()
        return {name: dumped[name] for name in DATA_SECTIONS if name in dumped}


def format_markdown(result: ExtractionResult) -> str:
    view = PageView(result)
    lines = [f"# {view.title}", "", f"> Source: {view.url}", "", "---", ""]

    if len(view.headings) > TOC_MIN_HEADINGS:
        lines += ["## Table of Contents", ""]
        for h in view.headings:
            indent = "  " * (h.get("level", 1) - 1)
            lines.append(f"{indent}- [{h.get('text', '')}](#{h.get('id', '')})")
        lines += ["", "---", ""]

    lines += ["## Content", "", clean_text(view.text_content), ""]

    if view.code_blocks:
        lines += ["---", "", "## Code Snippets", ""]
        for index, block in enumerate(view.code_blocks, 1):
            language = block.get("language", "")
            lines += [f"### Code Block {index} ({language})", "", f"```{language}", block.get("code", ""), "```", ""]

    if view.tables:
        lines += ["---", "", "## Tables", ""]
        for index, table in enumerate(view.tables, 1):
            lines += [f"### Table {index}", ""]
            headers = table.get("headers") or []
            if headers:
                lines.append("| " + " | ".join(headers) + " |")
                lines.append("| " + " | ".join("---" for _ in headers) + " |")
            for row in table.get("rows") or []:
                lines.append("| " + " | ".join(row) + " |")
            lines.append("")

    if view.links:
        lines += ["---", "", "## References & Links", ""]
        for link in view.links[:MAX_MARKDOWN_LINKS]:
            marker = " ↗" if link.get("isExternal") else ""
            lines.append(f"- [{link.get('text', '')}]({link.get('url', '')}){marker}")
        if len(view.links) > MAX_MARKDOWN_LINKS:
            lines.append(f"- ... and {len(view.links) - MAX_MARKDOWN_LINKS} more links")
        lines.append("")

    for name, payload in view.data_sections().items():
        lines += ["---", "", f"## {name.title()}", "", "```json", json.dumps(payload, indent=2, default=str), "```", ""]

    ai = result.ai_processing
    if ai is not None:
        lines += ["---", "", "## AI Processing", ""]
        lines.append(ai.response if ai.response is not None else f"_Failed: {ai.error}_")
        lines.append("")

    return "\n".join(lines)


def format_text(result: ExtractionResult) -> str:
    view = PageView(result)
    lines = [view.title.upper(), "=" * len(view.title), "", f"Source: {view.url}", "-" * 50, ""]
    lines += [clean_text(view.text_content), ""]

    if view.links:
        lines += ["-" * 50, "LINKS:"]
        for i, link in enumerate(view.links[:MAX_TEXT_LINKS], 1):
            lines.append(f"  {i}. {link.get('text', '')}: {link.get('url', '')}")

    if result.ai_processing is not None and result.ai_processing.response:
        lines += ["-" * 50, "AI:", result.ai_processing.response]

    return "\n".join(lines)


def _first_paragraph(text: str) -> str:
    for paragraph in re.split(r"\n\n+", text):
        cleaned = paragraph.strip()
        if len(cleaned) > 50:
            return cleaned[:300] + ("..." if len(cleaned) > 300 else "")
    return text[:300]


def build_outline(headings: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Nest headings under the nearest preceding heading of a lower level."""
    outline: List[Dict[str, Any]] = []
    stack = [{"children": outline, "level": 0}]
    for heading in headings:
        item = {"title": heading.get("text", ""), "level": heading.get("level", 1), "children": []}
        while len(stack) > 1 and stack[-1]["level"] >= item["level"]:
            stack.pop()
        stack[-1]["children"].append(item)
        stack.append(item)
    return outline


def format_structured(result: ExtractionResult) -> Dict[str, Any]:
    view = PageView(result)
    if view.headings:
        sections = [{"title": h.get("text"), "level": h.get("level"), "id": h.get("id")} for h in view.headings]
    else:
        sections = [{"title": "Main Content", "level": 1, "content": view.text_content[:2000]}]

    return {
        "title": view.title,
        "url": view.url,
        "sections": sections,
        "summary": {
            "firstParagraph": _first_paragraph(view.text_content),
            "wordCount": len(view.text_content.split()),
            "headingCount": len(view.headings),
            "linkCount": len(view.links),
            "imageCount": len(view.images),
        },
        "outline": build_outline(view.headings),
        "keyContent": {
            "headings": [h.get("text") for h in view.headings],
            "lists": view.lists,
            "codeBlocks": len(view.code_blocks),
        },
    }


def format_output(result: ExtractionResult, fmt: OutputFormat = OutputFormat.MARKDOWN) -> str:
    """Render ``result`` in the requested format as a string."""
    fmt = OutputFormat(fmt)
    if fmt is OutputFormat.TEXT:
        return format_text(result)
    if fmt is OutputFormat.STRUCTURED:
        return json.dumps(format_structured(result), indent=2, ensure_ascii=False)
    if fmt is OutputFormat.JSON:
        return json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=str)
    return format_markdown(result)


def chunk_text(text: str, size: int = 1000, overlap: int = 100) -> List[Dict[str, Any]]:
    """
    Split text on sentence boundaries into chunks of roughly ``size`` characters.

    Each new chunk starts with the last ``overlap // 5`` words of the previous one.
    """
    chunks: List[Dict[str, Any]] = []
    current = ""
    overlap_words = overlap // 5

    for sentence in _SENTENCE_SPLIT_RE.split(text or ""):
        if current and len(current + sentence) > size:
            chunks.append({"index": len(chunks), "content": current.strip(), "charCount": len(current)})
            carried = current.split()[-overlap_words:] if overlap_words else []
            current = " ".join(carried + [sentence])
        else:
            current += (" " if current else "") + sentence

    if current.strip():
        chunks.append({"index": len(chunks), "content": current.strip(), "charCount": len(current)})
    return chunks


def format_chunks(chunks: List[Dict[str, Any]], title: Optional[str] = None) -> str:
    lines = [f"# {title}", ""] if title else []
    for chunk in chunks:
        lines += [f"## Chunk {chunk['index'] + 1} ({chunk['charCount']} chars)", "", chunk["content"], ""]
    return "\n".join(lines)
