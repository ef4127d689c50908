"""
Instruction-driven web content extraction with optional AI intent parsing.
"""

from .models import (
    ExtractionData,
    ExtractionOptions,
    ExtractionPlan,
    ExtractionResult,
    ExtractorName,
    Intent,
    OutputFormat,
    ParsedInstruction,
)
from .config import AIConfig, ExtractionSettings, Provider
from .exceptions import AIProviderError, ExtractorError, PageLoadError, WebExtractError
from .classifier import PatternClassifier, classify_instruction
from .instructions import AIIntentResolver, parse_instruction
from .planner import PlanBuilder, create_extraction_plan
from .executor import PlanExecutor, execute_extraction_plan
from .postprocess import post_process_with_ai
from .page import PageSnapshot
from .llm import AICompletionClient
from .formatters import chunk_text, format_output
from .core import ExtractionRunner

__version__ = "1.0.0"

__all__ = [
    "AICompletionClient",
    "AIConfig",
    "AIIntentResolver",
    "AIProviderError",
    "ExtractionData",
    "ExtractionOptions",
    "ExtractionPlan",
    "ExtractionResult",
    "ExtractionRunner",
    "ExtractionSettings",
    "ExtractorError",
    "ExtractorName",
    "Intent",
    "OutputFormat",
    "PageLoadError",
    "PageSnapshot",
    "ParsedInstruction",
    "PatternClassifier",
    "PlanBuilder",
    "PlanExecutor",
    "Provider",
    "WebExtractError",
    "chunk_text",
    "classify_instruction",
    "create_extraction_plan",
    "execute_extraction_plan",
    "format_output",
    "parse_instruction",
    "post_process_with_ai",
]
