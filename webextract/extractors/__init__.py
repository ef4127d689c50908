from .code import code_module, detect_code_platform, extract_code_content, is_code_platform
from .content import content_module, extract_content, extract_links
from .documentation import documentation_module
from .media import media_module
from .metadata import extract_metadata
from .structured import structured_module

__all__ = [
    "code_module",
    "content_module",
    "detect_code_platform",
    "documentation_module",
    "extract_code_content",
    "extract_content",
    "extract_links",
    "extract_metadata",
    "is_code_platform",
    "media_module",
    "structured_module",
]
