"""
Code extraction for code-hosting platforms and ordinary pages.

Each platform scraper is a pure function over a parsed document and returns
``{name, type, files | codeBlocks, code, metadata, ...}``.
"""

import re
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from loguru import logger
from selectolax.parser import HTMLParser

from ..models import ExtractionPlan
from ..page import PageSnapshot, block_text, node_text

PLATFORM_HOSTS = [
    ("gist.github.com", "gist"),
    ("github.com", "github"),
    ("gitlab.com", "gitlab"),
    ("bitbucket.org", "bitbucket"),
    ("stackoverflow.com", "stackoverflow"),
    ("stackexchange.com", "stackoverflow"),
    ("codepen.io", "codepen"),
    ("jsfiddle.net", "jsfiddle"),
    ("replit.com", "replit"),
    ("codesandbox.io", "codesandbox"),
]

WEBSITE_CODE_SELECTORS = [
    "pre code",
    "pre.code",
    ".highlight code",
    ".code-block",
    '[class*="language-"]',
    ".CodeMirror-code",
    ".ace_content",
    'code[class*="language"]',
    ".prism-code",
    ".hljs",
]

_LANGUAGE_RE = re.compile(r"language-(\w+)")
_HIGHLIGHT_RE = re.compile(r"highlight-source-(\w+)")

MIN_SNIPPET_CHARS = 10
MIN_WEBSITE_SNIPPET_CHARS = 20
DEDUP_PREFIX_CHARS = 100
MAX_QUESTION_CHARS = 1000


def detect_code_platform(url: str) -> str:
    hostname = (urlparse(url).hostname or "").lower()
    for host, platform in PLATFORM_HOSTS:
        if host in hostname:
            return platform
    return "website"


def is_code_platform(url: str) -> bool:
    return detect_code_platform(url) != "website"


def _classes(node) -> str:
    return node.attributes.get("class") or ""


def _text_of(tree: HTMLParser, *selectors: str) -> Optional[str]:
    for selector in selectors:
        node = tree.css_first(selector)
        if node is not None:
            text = node_text(node)
            if text:
                return text
    return None


def scrape_github(tree: HTMLParser, page_url: str) -> Dict[str, Any]:
    repo_name = _text_of(tree, 'strong[itemprop="name"] a', "h1 strong a")
    repo_owner = _text_of(tree, 'span[itemprop="author"] a', "h1 a")

    result: Dict[str, Any] = {
        "name": repo_name,
        "type": "github",
        "repository": {
            "name": repo_name,
            "owner": repo_owner,
            "fullName": f"{repo_owner}/{repo_name}" if repo_owner and repo_name else None,
            "description": _text_of(tree, 'p[itemprop="description"]'),
            "url": page_url,
        },
        "files": [],
        "readme": None,
        "codeBlocks": [],
    }

    for selector in ('article[itemprop="text"]', ".markdown-body", "#readme"):
        readme = tree.css_first(selector)
        if readme is not None:
            result["readme"] = {"text": block_text(readme)}
            break

    file_view = tree.css_first(".blob-wrapper table") or tree.css_first(".react-code-lines")
    if file_view is not None:
        file_name = _text_of(tree, ".final-path", "strong.final-path")
        lines = [node.text(deep=True) for node in file_view.css("td.blob-code, .react-code-text")]
        if lines:
            result["files"].append({
                "name": file_name,
                "language": file_name.rsplit(".", 1)[-1] if file_name else None,
                "content": "\n".join(lines),
                "lines": len(lines),
            })

    for node in tree.css("pre code, .highlight"):
        code = block_text(node)
        if len(code) <= MIN_SNIPPET_CHARS:
            continue
        classes = _classes(node)
        match = _LANGUAGE_RE.search(classes) or _HIGHLIGHT_RE.search(classes)
        result["codeBlocks"].append({
            "language": match.group(1) if match else "plaintext",
            "code": code,
            "lines": len(code.split("\n")),
        })

    result["code"] = "\n\n// ---\n\n".join(
        [f["content"] for f in result["files"]] + [b["code"] for b in result["codeBlocks"]]
    )
    result["metadata"] = {
        "totalFiles": len(result["files"]),
        "totalCodeBlocks": len(result["codeBlocks"]),
        "hasReadme": result["readme"] is not None,
    }
    return result


def _snippets(container) -> List[Dict[str, str]]:
    snippets = []
    for node in container.css(".s-prose pre code"):
        code = block_text(node)
        if len(code) <= MIN_SNIPPET_CHARS:
            continue
        language = _classes(node).replace("language-", "").replace("hljs", "").strip()
        snippets.append({"code": code, "language": language or "unknown"})
    return snippets


def _votes(answer) -> int:
    node = answer.css_first(".js-vote-count")
    raw = node_text(node) if node is not None else ""
    try:
        return int(raw)
    except ValueError:
        return 0


def scrape_stackoverflow(tree: HTMLParser) -> Dict[str, Any]:
    title = _text_of(tree, "#question-header h1") or ""
    question_node = tree.css_first(".question .s-prose")
    question = block_text(question_node)[:MAX_QUESTION_CHARS]

    question_container = tree.css_first(".question")
    question_code = _snippets(question_container) if question_container is not None else []

    answers = []
    for answer in tree.css(".answer"):
        snippets = _snippets(answer)
        if snippets:
            answers.append({
                "code": snippets,
                "isAccepted": "accepted-answer" in _classes(answer).split(),
                "votes": _votes(answer),
            })
    answers.sort(key=lambda a: a["votes"], reverse=True)

    sections = [f"// Question Code ({c['language']})\n{c['code']}" for c in question_code]
    for i, answer in enumerate(answers):
        accepted = " [ACCEPTED]" if answer["isAccepted"] else ""
        sections.extend(f"// Answer {i + 1} ({c['language']}){accepted}\n{c['code']}" for c in answer["code"])

    answer_code = [c for a in answers for c in a["code"]]
    return {
        "name": title,
        "type": "stackoverflow",
        "title": title,
        "question": question,
        "tags": [node_text(tag) for tag in tree.css(".post-tag")],
        "code": "\n\n// ---\n\n".join(sections),
        "codeBlocks": question_code + answer_code,
        "answers": answers,
        "metadata": {
            "answerCount": len(answers),
            "hasAcceptedAnswer": any(a["isAccepted"] for a in answers),
            "languages": list(dict.fromkeys(c["language"] for c in question_code + answer_code)),
        },
    }


def scrape_website(tree: HTMLParser) -> Optional[Dict[str, Any]]:
    """Code blocks from any page, or None when it has none."""
    title_node = tree.css_first("title")
    title = (
        _text_of(tree, "h1")
        or (title_node.text(strip=True) if title_node is not None else "")
        or "Untitled"
    )

    blocks = []
    seen = set()
    for selector in WEBSITE_CODE_SELECTORS:
        for node in tree.css(selector):
            code = block_text(node)
            if len(code) <= MIN_WEBSITE_SNIPPET_CHARS:
                continue
            key = code[:DEDUP_PREFIX_CHARS]
            if key in seen:
                continue
            seen.add(key)
            match = _LANGUAGE_RE.search(_classes(node))
            blocks.append({
                "code": code,
                "language": match.group(1) if match else "unknown",
                "length": len(code),
            })

    if not blocks:
        return None

    return {
        "name": title,
        "type": "website",
        "title": title,
        "code": "\n\n// ---\n\n".join(f"// {b['language']}\n{b['code']}" for b in blocks),
        "codeBlocks": blocks,
        "metadata": {
            "totalCodeBlocks": len(blocks),
            "languages": list(dict.fromkeys(b["language"] for b in blocks)),
        },
    }


async def extract_code_content(page: PageSnapshot) -> Optional[Dict[str, Any]]:
    """Dispatch to the scraper for the page's platform."""
    platform = detect_code_platform(page.final_url)
    logger.debug(f"Detected code platform: {platform}")

    if platform == "stackoverflow":
        return await page.evaluate(scrape_stackoverflow)
    if platform in ("github", "gist"):
        data = await page.evaluate(scrape_github, page.final_url)
        data["type"] = platform
        return data
    return await page.evaluate(scrape_website)


async def code_module(page: PageSnapshot, plan: ExtractionPlan) -> Dict[str, Any]:
    code = await extract_code_content(page)
    if code is None:
        return {}

    wanted = plan.options.specific_file
    if wanted and code.get("files") is not None:
        code["files"] = [f for f in code["files"] if wanted in (f.get("name") or "")]

    return {"code": code}
