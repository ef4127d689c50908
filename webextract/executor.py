"""
Runs an extraction plan's modules against one page snapshot.

Modules run concurrently and each one owns a disjoint set of ``data`` keys.
A module that raises or returns malformed output contributes nothing;
the others still land.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

from loguru import logger

from .config import AIConfig
from .exceptions import PageLoadError
from .extractors import (
    code_module,
    content_module,
    documentation_module,
    extract_metadata,
    is_code_platform,
    media_module,
    structured_module,
)
from .models import ExtractionData, ExtractionPlan, ExtractionResult, ExtractorName, utc_now
from .page import PageSnapshot

ExtractorModule = Callable[[PageSnapshot, ExtractionPlan], Awaitable[Dict[str, Any]]]

EXTRACTOR_MODULES: Dict[ExtractorName, ExtractorModule] = {
    ExtractorName.CODE: code_module,
    ExtractorName.CONTENT: content_module,
    ExtractorName.MEDIA: media_module,
    ExtractorName.STRUCTURED: structured_module,
    ExtractorName.DOCUMENTATION: documentation_module,
}


async def _attempt(
    name: str,
    module: ExtractorModule,
    page: PageSnapshot,
    plan: ExtractionPlan,
    sink: Dict[str, Any],
) -> bool:
    """Run one module and merge its keys into ``sink``; log and drop failures.

    Output that is not a mapping of valid ``ExtractionData`` fields counts as
    a failure of that module.
    """
    try:
        produced = await module(page, plan)
        if produced is None:
            produced = {}
        if not isinstance(produced, dict):
            raise TypeError(f"expected a dict, got {type(produced).__name__}")
        validated = ExtractionData.model_validate(produced)
    except Exception as e:
        logger.warning(f"{name} extraction failed: {e}")
        return False
    sink.update(validated.model_dump(exclude_unset=True))
    return True


class PlanExecutor:
    """Fans a plan out to its extractor modules and assembles the result."""

    def __init__(self, modules: Optional[Dict[ExtractorName, ExtractorModule]] = None, metadata=None):
        self.modules = dict(EXTRACTOR_MODULES if modules is None else modules)
        self.metadata = metadata or extract_metadata

    def selected(self, plan: ExtractionPlan) -> List[ExtractorName]:
        """Extractor modules to run: the plan's, plus code on code-hosting URLs."""
        names = list(plan.extractors)
        if ExtractorName.CODE not in names and is_code_platform(plan.url):
            names.append(ExtractorName.CODE)
        return [name for name in names if name in self.modules]

    async def execute(self, page: PageSnapshot, plan: ExtractionPlan) -> ExtractionResult:
        if not callable(getattr(page, "evaluate", None)):
            raise PageLoadError(f"Unusable page snapshot: {type(page).__name__}", url=plan.url)

        logger.info(f"Executing {plan.intent.value} on {plan.url}")

        names = self.selected(plan)
        sinks: Dict[ExtractorName, Dict[str, Any]] = {name: {} for name in names}

        _, metadata = await asyncio.gather(
            asyncio.gather(*(
                _attempt(name.value, self.modules[name], page, plan, sinks[name])
                for name in names
            )),
            self._metadata(page),
        )

        data: Dict[str, Any] = {}
        for name in names:
            data.update(sinks[name])
        data["metadata"] = metadata

        result = ExtractionResult(
            instruction=plan.instruction,
            intent=plan.intent,
            url=plan.url,
            data=ExtractionData(**data),
        )
        result.status = "success"
        result.extracted_at = utc_now()

        logger.debug(f"Extracted categories: {', '.join(result.data.present())}")
        return result

    async def _metadata(self, page: PageSnapshot) -> Dict[str, Any]:
        try:
            metadata = await self.metadata(page)
            if not isinstance(metadata, dict):
                raise TypeError(f"expected a dict, got {type(metadata).__name__}")
            return metadata
        except Exception as e:
            logger.warning(f"metadata extraction failed: {e}")
            return {"error": str(e)}


async def execute_extraction_plan(
    page: PageSnapshot,
    plan: ExtractionPlan,
    ai_config: Optional[AIConfig] = None,
) -> ExtractionResult:
    """Run ``plan`` against ``page``. AI enrichment is a separate step."""
    return await PlanExecutor().execute(page, plan)
