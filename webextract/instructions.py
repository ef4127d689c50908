"""
Instruction parsing: a keyword fast path with an AI fallback for the rest.
"""

import json
import re
from typing import Any, Dict, Optional

from loguru import logger

from .classifier import PatternClassifier
from .config import AIConfig
from .exceptions import AIProviderError
from .llm import AICompletionClient
from .models import Intent, ParsedInstruction

FAST_PATH_CONFIDENCE = 0.8
AI_CONFIDENCE = 0.95

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

INTENT_PROMPT = """Analyze this user instruction for web scraping and determine the extraction intent.

User Instruction: "{instruction}"
Target URL: {url}

Determine:
1. What does the user want to extract? (code, article, pricing, images, links, tables, etc.)
2. Are they looking for specific elements or everything?
3. What is the primary intent?

Respond in JSON format:
{{
  "intent": "extract_code|extract_article|extract_pricing|extract_images|etc",
  "targets": ["target1", "target2"],
  "specifics": "any specific requirements",
  "needsAI": true/false
}}

Only respond with valid JSON."""


def extract_json_object(text: str) -> Dict[str, Any]:
    """Parse the outermost ``{...}`` span of a model reply."""
    match = _JSON_OBJECT_RE.search(text or "")
    if not match:
        raise ValueError("No JSON object in AI response")
    data = json.loads(match.group(0))
    if not isinstance(data, dict):
        raise ValueError("AI response JSON is not an object")
    return data


class AIIntentResolver:
    """Asks an AI backend to classify instructions the keyword rules could not."""

    def __init__(self, client, classifier: Optional[PatternClassifier] = None):
        self.client = client
        self.classifier = classifier or PatternClassifier()

    async def resolve(self, instruction: str, url: str) -> ParsedInstruction:
        """Classify via AI; on any failure fall back to the keyword result."""
        try:
            completion = await self.client.complete(
                INTENT_PROMPT.format(instruction=instruction, url=url),
                max_tokens=300,
            )
            data = extract_json_object(completion.content)

            targets = data.get("targets")
            if isinstance(targets, str):
                targets = [targets]
            if isinstance(targets, list):
                targets = [str(t) for t in targets if str(t).strip()]
            if not isinstance(targets, list) or not targets:
                targets = ["all"]

            specifics = data.get("specifics")
            parsed = ParsedInstruction(
                intent=Intent.coerce(data.get("intent") or Intent.EXTRACT_ALL.value),
                targets=targets,
                specifics=str(specifics) if specifics else None,
                require_ai=bool(data.get("needsAI", False)),
                confidence=AI_CONFIDENCE,
                ai_parsed=True,
                original_instruction=instruction,
            )
            logger.info(f"AI parsed instruction as {parsed.intent.value} -> {parsed.targets}")
            return parsed

        except Exception as e:
            logger.warning(f"AI parsing failed: {e}")
            return self.classifier.classify(instruction)


async def parse_instruction(
    instruction: str,
    url: str,
    ai_config: Optional[AIConfig] = None,
    client=None,
    threshold: Optional[float] = None,
) -> ParsedInstruction:
    """
    Classify an instruction, consulting AI only when keyword confidence is low.

    Args:
        instruction: Free-text extraction instruction
        url: Page the instruction will be applied to
        ai_config: AI backend settings; None disables the AI fallback
        client: Completion client to use instead of one built from ai_config
        threshold: Override for the fast-path confidence cutoff

    Returns:
        ParsedInstruction
    """
    cutoff = FAST_PATH_CONFIDENCE if threshold is None else threshold
    classifier = PatternClassifier()
    quick = classifier.classify(instruction)

    if quick.confidence > cutoff:
        logger.debug(f"Fast path: {quick.intent.value} ({quick.confidence})")
        return quick

    if ai_config is None or not ai_config.enabled:
        return quick

    if client is None:
        try:
            client = AICompletionClient(ai_config)
        except AIProviderError as e:
            logger.warning(f"AI parsing unavailable: {e}")
            return quick

    return await AIIntentResolver(client, classifier).resolve(instruction, url)
