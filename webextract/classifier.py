"""Keyword classifier mapping instructions to extraction intents.

Rules are checked in order and the first rule with a matching substring wins,
so more specific intents sit above generic ones. The instruction parser only
consults an AI backend when this classifier falls through to its
low-confidence default.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from loguru import logger

from .models import DEFAULT_TARGETS, Intent, ParsedInstruction

DEFAULT_CONFIDENCE = 0.5

_QUOTED_RE = re.compile(r"[\"']([^\"']+)[\"']")
_FILENAME_RE = re.compile(r"\b(\w+\.\w+)\b")


@dataclass(frozen=True)
class PatternRule:
    patterns: Tuple[str, ...]
    intent: Intent
    targets: Tuple[str, ...]
    confidence: float
    require_ai: bool = False
    extract_file_name: bool = False

    def matches(self, lowered: str) -> bool:
        return any(p in lowered for p in self.patterns)


RULES: Tuple[PatternRule, ...] = (
    # Code
    PatternRule(
        ("extract code", "get code", "download code", "scrape code", "all files", "source code", "repository"),
        Intent.EXTRACT_CODE, ("code", "files", "repository"), 0.95,
    ),
    PatternRule(
        ("specific file", "particular file", "file named", "get file"),
        Intent.EXTRACT_SPECIFIC_FILE, ("specific_file",), 0.9,
        extract_file_name=True,
    ),
    PatternRule(
        ("readme", "documentation", "docs", "getting started"),
        Intent.EXTRACT_DOCUMENTATION, ("readme", "documentation"), 0.95,
    ),
    # Content
    PatternRule(
        ("article", "blog post", "post content", "main content", "text content"),
        Intent.EXTRACT_ARTICLE, ("article", "main_content"), 0.95,
    ),
    PatternRule(
        ("summary", "summarize", "tldr", "brief", "overview"),
        Intent.EXTRACT_SUMMARY, ("summary",), 0.95,
        require_ai=True,
    ),
    PatternRule(
        ("all text", "everything", "full page", "entire page", "complete content"),
        Intent.EXTRACT_ALL, ("all",), 0.9,
    ),
    # Structured data
    PatternRule(
        ("pricing", "price", "cost", "plans", "subscription"),
        Intent.EXTRACT_PRICING, ("pricing", "tables", "plans"), 0.95,
    ),
    PatternRule(
        ("contact", "email", "phone", "address", "contact info"),
        Intent.EXTRACT_CONTACT, ("contact_info",), 0.95,
    ),
    PatternRule(
        ("product", "product details", "product info", "item details"),
        Intent.EXTRACT_PRODUCT, ("product", "details", "specifications"), 0.9,
    ),
    PatternRule(
        ("table", "tables", "data table", "tabular data"),
        Intent.EXTRACT_TABLES, ("tables",), 0.95,
    ),
    PatternRule(
        ("images", "pictures", "photos", "gallery", "image urls"),
        Intent.EXTRACT_IMAGES, ("images",), 0.95,
    ),
    PatternRule(
        ("links", "urls", "all links", "hyperlinks"),
        Intent.EXTRACT_LINKS, ("links",), 0.95,
    ),
    PatternRule(
        ("headings", "headers", "titles", "outline", "structure"),
        Intent.EXTRACT_HEADINGS, ("headings", "structure"), 0.95,
    ),
    # Lists and discussions
    PatternRule(
        ("list", "items", "bullet points", "enumeration"),
        Intent.EXTRACT_LISTS, ("lists",), 0.9,
    ),
    PatternRule(
        ("comments", "discussions", "user comments"),
        Intent.EXTRACT_COMMENTS, ("comments",), 0.9,
    ),
    # API / technical
    PatternRule(
        ("api", "api documentation", "endpoints", "api reference"),
        Intent.EXTRACT_API_DOCS, ("api", "code", "endpoints"), 0.95,
    ),
    PatternRule(
        ("schema", "data model", "database schema"),
        Intent.EXTRACT_SCHEMA, ("schema", "tables", "structure"), 0.9,
    ),
    # Analysis (needs an AI pass afterwards)
    PatternRule(
        ("analyze", "analysis", "insights", "understand"),
        Intent.ANALYZE_CONTENT, ("all",), 0.85,
        require_ai=True,
    ),
    PatternRule(
        ("explain", "what is", "describe", "tell me about"),
        Intent.EXPLAIN_CONTENT, ("all",), 0.85,
        require_ai=True,
    ),
)


def extract_file_name(instruction: str) -> Optional[str]:
    """Quoted string first, then the first bare ``name.ext`` token."""
    match = _QUOTED_RE.search(instruction) or _FILENAME_RE.search(instruction)
    return match.group(1) if match else None


class PatternClassifier:
    """Ordered substring rules over the lower-cased instruction."""

    def __init__(self, rules: Tuple[PatternRule, ...] = RULES):
        self.rules = rules

    def classify(self, instruction: str) -> ParsedInstruction:
        lowered = (instruction or "").lower()

        for rule in self.rules:
            if not rule.matches(lowered):
                continue

            parsed = ParsedInstruction(
                intent=rule.intent,
                targets=list(rule.targets),
                confidence=rule.confidence,
                require_ai=rule.require_ai,
                original_instruction=instruction,
            )
            if rule.extract_file_name:
                parsed.file_name = extract_file_name(instruction)

            logger.debug(f"Pattern match: {parsed.intent.value} (confidence {parsed.confidence})")
            return parsed

        logger.debug("No pattern matched, defaulting to article extraction")
        return ParsedInstruction(
            intent=Intent.EXTRACT_ARTICLE,
            targets=list(DEFAULT_TARGETS),
            confidence=DEFAULT_CONFIDENCE,
            original_instruction=instruction,
        )

    def patterns(self) -> List[Tuple[Intent, Tuple[str, ...]]]:
        return [(rule.intent, rule.patterns) for rule in self.rules]


_default_classifier = PatternClassifier()


def classify_instruction(instruction: str) -> ParsedInstruction:
    return _default_classifier.classify(instruction)
