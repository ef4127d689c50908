from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


DEFAULT_TARGETS = ["article", "main_content"]


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Intent(str, Enum):
    """Dominant extraction goal of an instruction."""

    EXTRACT_CODE = "extract_code"
    EXTRACT_SPECIFIC_FILE = "extract_specific_file"
    EXTRACT_DOCUMENTATION = "extract_documentation"
    EXTRACT_ARTICLE = "extract_article"
    EXTRACT_SUMMARY = "extract_summary"
    EXTRACT_ALL = "extract_all"
    EXTRACT_PRICING = "extract_pricing"
    EXTRACT_CONTACT = "extract_contact"
    EXTRACT_PRODUCT = "extract_product"
    EXTRACT_TABLES = "extract_tables"
    EXTRACT_IMAGES = "extract_images"
    EXTRACT_LINKS = "extract_links"
    EXTRACT_HEADINGS = "extract_headings"
    EXTRACT_LISTS = "extract_lists"
    EXTRACT_COMMENTS = "extract_comments"
    EXTRACT_API_DOCS = "extract_api_docs"
    EXTRACT_SCHEMA = "extract_schema"
    ANALYZE_CONTENT = "analyze_content"
    EXPLAIN_CONTENT = "explain_content"

    @classmethod
    def coerce(cls, value: Any) -> "Intent":
        """Map any value onto the closed set, falling back to EXTRACT_ALL."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.EXTRACT_ALL


class Target(str, Enum):
    """Semantic content categories the plan builder knows how to serve."""

    CODE = "code"
    FILES = "files"
    REPOSITORY = "repository"
    SPECIFIC_FILE = "specific_file"
    ARTICLE = "article"
    MAIN_CONTENT = "main_content"
    SUMMARY = "summary"
    IMAGES = "images"
    LINKS = "links"
    TABLES = "tables"
    HEADINGS = "headings"
    STRUCTURE = "structure"
    LISTS = "lists"
    PRICING = "pricing"
    PLANS = "plans"
    CONTACT_INFO = "contact_info"
    PRODUCT = "product"
    DETAILS = "details"
    SPECIFICATIONS = "specifications"
    DOCUMENTATION = "documentation"
    README = "readme"
    ALL = "all"

    @classmethod
    def lookup(cls, value: str) -> Optional["Target"]:
        try:
            return cls(value)
        except ValueError:
            return None


class ExtractorName(str, Enum):
    """Extractor modules, in the order plans list them."""

    CODE = "code"
    CONTENT = "content"
    MEDIA = "media"
    STRUCTURED = "structured"
    DOCUMENTATION = "documentation"


class OutputFormat(str, Enum):
    MARKDOWN = "markdown"
    TEXT = "text"
    STRUCTURED = "structured"
    JSON = "json"


class ParsedInstruction(BaseModel):
    """Classified form of a free-text extraction instruction."""

    intent: Intent
    targets: List[str] = Field(default_factory=lambda: list(DEFAULT_TARGETS))
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    require_ai: bool = False
    file_name: Optional[str] = None
    specifics: Optional[str] = None
    ai_parsed: bool = False
    original_instruction: str = ""

    @field_validator("targets")
    @classmethod
    def validate_targets(cls, v: List[str]) -> List[str]:
        cleaned = [str(t).strip().lower() for t in v if str(t).strip()]
        return cleaned or list(DEFAULT_TARGETS)


class ExtractionOptions(BaseModel):
    """Option flags accumulated from an instruction's targets."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    include_images: bool = False
    include_links: bool = False
    include_tables: bool = False
    include_code: bool = False
    include_lists: bool = False
    include_headings: bool = False
    include_main_content: bool = False
    include_pricing: bool = False
    include_contact: bool = False
    include_product: bool = False
    include_documentation: bool = False
    specific_file: Optional[str] = None

    def enabled_flags(self) -> FrozenSet[str]:
        """Names of the boolean flags that are switched on."""
        return frozenset(
            name for name, value in self.__dict__.items()
            if name.startswith("include_") and value is True
        )

    def merge(self, flags: FrozenSet[str]) -> "ExtractionOptions":
        """Return a copy with ``flags`` switched on. Flags are never switched off."""
        if not flags:
            return self
        return self.model_copy(update={flag: True for flag in flags})


OPTION_FLAGS: Tuple[str, ...] = tuple(
    name for name in ExtractionOptions.model_fields if name.startswith("include_")
)


class ExtractionPlan(BaseModel):
    """Concrete, immutable set of extractor modules and options for one page."""

    model_config = ConfigDict(frozen=True)

    intent: Intent
    instruction: str
    url: str
    targets: Tuple[str, ...] = ()
    extractors: Tuple[ExtractorName, ...] = ()
    options: ExtractionOptions = Field(default_factory=ExtractionOptions)
    requires_ai: bool = False
    ai_task: Optional[Intent] = None
    specifics: Optional[str] = None

    def has_target(self, *targets: str) -> bool:
        return any(t in self.targets for t in targets)

    def uses(self, extractor: ExtractorName) -> bool:
        return extractor in self.extractors


class ExtractionData(BaseModel):
    """Per-category payloads. A category left as None was not produced."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    code: Optional[Dict[str, Any]] = None
    headings: Optional[List[Dict[str, Any]]] = None
    links: Optional[List[Dict[str, Any]]] = None
    tables: Optional[List[Dict[str, Any]]] = None
    lists: Optional[List[Dict[str, Any]]] = None
    paragraphs: Optional[List[str]] = None
    text_content: Optional[str] = None
    images: Optional[List[Dict[str, Any]]] = None
    videos: Optional[List[Dict[str, Any]]] = None
    pricing: Optional[List[Dict[str, Any]]] = None
    contact: Optional[Dict[str, Any]] = None
    product: Optional[Dict[str, Any]] = None
    structured: Optional[Dict[str, Any]] = None
    documentation: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    content: Optional[Dict[str, Any]] = None

    def present(self) -> List[str]:
        """Names of the categories that carry a payload."""
        return [name for name, value in self.__dict__.items() if value is not None]

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class AIProcessing(BaseModel):
    """Outcome of the optional AI enrichment pass."""

    task: Optional[str] = None
    response: Optional[str] = None
    error: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    timestamp: str = Field(default_factory=utc_now)


class ExtractionResult(BaseModel):
    """Everything extracted from one URL."""

    instruction: str
    intent: Optional[Intent] = None
    url: str
    extracted_at: Optional[str] = None
    data: ExtractionData = Field(default_factory=ExtractionData)
    ai_processing: Optional[AIProcessing] = None
    status: Optional[Literal["success", "failed"]] = None
    error: Optional[str] = None

    @classmethod
    def failed(cls, url: str, instruction: str, error: Any) -> "ExtractionResult":
        return cls(
            url=url,
            instruction=instruction,
            status="failed",
            error=str(error),
            extracted_at=utc_now(),
        )

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def to_dict(self) -> Dict[str, Any]:
        """Plain-JSON view with camelCase keys and absent categories dropped."""
        data = {
            "instruction": self.instruction,
            "intent": self.intent.value if self.intent else None,
            "url": self.url,
            "extractedAt": self.extracted_at,
            "status": self.status,
            "data": self.data.to_dict(),
        }
        if self.error:
            data["error"] = self.error
        if self.ai_processing:
            data["aiProcessing"] = self.ai_processing.model_dump(exclude_none=True)
        return data
