"""
Optional AI enrichment pass over an assembled extraction result.
"""

import json
from typing import Dict, Optional

from loguru import logger

from .config import AIConfig
from .llm import AICompletionClient
from .models import AIProcessing, ExtractionPlan, ExtractionResult, Intent

AI_CONTEXT_CHARS = 8000
POSTPROCESS_MAX_TOKENS = 1000
POSTPROCESS_TEMPERATURE = 0.3

PROMPT_TEMPLATES: Dict[Intent, str] = {
    Intent.EXTRACT_SUMMARY: """Summarize this extracted content concisely:

{data}

Provide a clear, brief summary (3-5 sentences).""",
    Intent.ANALYZE_CONTENT: """Analyze this extracted content and provide insights:

{data}

Provide:
1. Main topics/themes
2. Key information
3. Important takeaways
4. Notable patterns or trends""",
    Intent.EXPLAIN_CONTENT: """Explain this content in simple terms:

{data}

Provide an easy-to-understand explanation.""",
}

FALLBACK_TEMPLATE = """Process this extracted data according to the user's request: "{instruction}"

Data:
{data}

Provide the requested information."""


def build_prompt(result: ExtractionResult, plan: ExtractionPlan, context_chars: int = AI_CONTEXT_CHARS) -> str:
    """Fill the template for ``plan.ai_task`` with a truncated JSON dump of the data."""
    data = json.dumps(result.data.to_dict(), indent=2, ensure_ascii=False, default=str)[:context_chars]
    template = PROMPT_TEMPLATES.get(plan.ai_task, FALLBACK_TEMPLATE)
    prompt = template.format(data=data, instruction=plan.instruction)
    if plan.specifics:
        prompt += f"\n\nAdditional requirements: {plan.specifics}"
    return prompt


async def post_process_with_ai(
    result: ExtractionResult,
    plan: ExtractionPlan,
    ai_config: Optional[AIConfig],
    client=None,
    context_chars: Optional[int] = None,
) -> ExtractionResult:
    """
    Attach an AI summary/analysis to ``result`` when the plan asks for one.

    Returns the same object. It is untouched when the plan does not require AI
    or no provider is configured; otherwise ``ai_processing`` holds either the
    response or the error, and ``data`` is never modified.
    """
    if not plan.requires_ai:
        return result
    if ai_config is None or not ai_config.enabled:
        return result

    task = plan.ai_task.value if plan.ai_task else None
    logger.info(f"Post-processing with AI: {task}")

    try:
        if client is None:
            client = AICompletionClient(ai_config)
        prompt = build_prompt(result, plan, context_chars or AI_CONTEXT_CHARS)
        completion = await client.complete(
            prompt,
            max_tokens=POSTPROCESS_MAX_TOKENS,
            temperature=POSTPROCESS_TEMPERATURE,
        )
        result.ai_processing = AIProcessing(
            task=task,
            response=completion.content,
            provider=completion.provider,
            model=completion.model,
        )
    except Exception as e:
        logger.warning(f"AI processing failed: {e}")
        result.ai_processing = AIProcessing(task=task, error=str(e))

    return result
