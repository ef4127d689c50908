"""Exception types raised by webextract."""

from typing import Optional


class WebExtractError(Exception):
    """Base class for all webextract errors."""


class AIProviderError(WebExtractError):
    """An AI completion backend could not produce a usable response."""

    def __init__(self, message: str, provider: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class PageLoadError(WebExtractError):
    """A page could not be fetched or rendered."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class ExtractorError(WebExtractError):
    """An extractor module was given input it cannot work with."""
