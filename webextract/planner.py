"""
Expansion of parsed instructions into concrete extraction plans.
"""

from functools import reduce
from typing import Dict, FrozenSet, NamedTuple, Optional

from loguru import logger

from .models import (
    ExtractionOptions,
    ExtractionPlan,
    ExtractorName,
    ParsedInstruction,
    Target,
)


class Dispatch(NamedTuple):
    extractors: FrozenSet[ExtractorName]
    flags: FrozenSet[str]


def _entry(extractors, flags) -> Dispatch:
    return Dispatch(frozenset(extractors), frozenset(flags))


_CODE = _entry([ExtractorName.CODE], ["include_code"])
_MAIN = _entry([ExtractorName.CONTENT], ["include_main_content"])
_HEADINGS = _entry([ExtractorName.CONTENT], ["include_headings"])
_PRICING = _entry([ExtractorName.CONTENT, ExtractorName.STRUCTURED], ["include_tables", "include_pricing"])
_PRODUCT = _entry([ExtractorName.STRUCTURED], ["include_product"])
_DOCS = _entry([ExtractorName.DOCUMENTATION], ["include_documentation"])

TARGET_DISPATCH: Dict[Target, Dispatch] = {
    Target.CODE: _CODE,
    Target.FILES: _CODE,
    Target.REPOSITORY: _CODE,
    Target.SPECIFIC_FILE: _CODE,
    Target.ARTICLE: _MAIN,
    Target.MAIN_CONTENT: _MAIN,
    Target.SUMMARY: _MAIN,
    Target.IMAGES: _entry([ExtractorName.MEDIA], ["include_images"]),
    Target.LINKS: _entry([ExtractorName.CONTENT], ["include_links"]),
    Target.TABLES: _entry([ExtractorName.CONTENT], ["include_tables"]),
    Target.HEADINGS: _HEADINGS,
    Target.STRUCTURE: _HEADINGS,
    Target.LISTS: _entry([ExtractorName.CONTENT], ["include_lists"]),
    Target.PRICING: _PRICING,
    Target.PLANS: _PRICING,
    Target.CONTACT_INFO: _entry([ExtractorName.STRUCTURED], ["include_contact"]),
    Target.PRODUCT: _PRODUCT,
    Target.DETAILS: _PRODUCT,
    Target.SPECIFICATIONS: _PRODUCT,
    Target.DOCUMENTATION: _DOCS,
    Target.README: _DOCS,
    Target.ALL: _entry(
        [ExtractorName.CONTENT, ExtractorName.MEDIA, ExtractorName.STRUCTURED],
        [
            "include_images",
            "include_links",
            "include_tables",
            "include_code",
            "include_lists",
            "include_headings",
        ],
    ),
}

_EMPTY = Dispatch(frozenset(), frozenset())


class PlanBuilder:
    """Folds a parsed instruction's targets through a target dispatch table."""

    def __init__(self, dispatch: Optional[Dict[Target, Dispatch]] = None):
        self.dispatch = TARGET_DISPATCH if dispatch is None else dispatch

    def _apply(self, state: Dispatch, target: str) -> Dispatch:
        key = Target.lookup(target)
        entry = self.dispatch.get(key) if key else None
        if entry is None:
            logger.debug(f"Ignoring unknown target {target!r}")
            return state
        return Dispatch(state.extractors | entry.extractors, state.flags | entry.flags)

    def build(self, parsed: ParsedInstruction, url: str) -> ExtractionPlan:
        state = reduce(self._apply, parsed.targets, _EMPTY)

        options = ExtractionOptions().merge(state.flags)
        if parsed.file_name:
            options = options.model_copy(update={"specific_file": parsed.file_name})

        plan = ExtractionPlan(
            intent=parsed.intent,
            instruction=parsed.original_instruction,
            url=url,
            targets=tuple(parsed.targets),
            extractors=tuple(name for name in ExtractorName if name in state.extractors),
            options=options,
            requires_ai=parsed.require_ai,
            ai_task=parsed.intent if parsed.require_ai else None,
            specifics=parsed.specifics,
        )

        logger.info(f"Extraction plan: {', '.join(e.value for e in plan.extractors) or 'metadata only'}")
        return plan


_default_builder = PlanBuilder()


def create_extraction_plan(parsed: ParsedInstruction, url: str) -> ExtractionPlan:
    """Build the extraction plan for one (instruction, url) pair."""
    return _default_builder.build(parsed, url)
