"""Error taxonomy for generation calls and the pipeline.

Every error carries a user-facing message and the HTTP status the web layer
answers with. Nothing in this package retries on any of them.
"""

from typing import Optional


class ContentformerError(Exception):
    """Base exception for all Contentformer errors."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigError(ContentformerError):
    """Selected provider has no usable key, or no provider is usable."""

    status_code = 400


class SelectionError(ContentformerError):
    """Step mode invoked before its prerequisite idea or script was selected."""

    status_code = 400


class ProviderError(ContentformerError):
    """Provider call failed for a reason other than auth, rate limit or timeout."""

    status_code = 502

    def __init__(self, message: str, provider: str = "", original: Optional[BaseException] = None):
        self.provider = provider
        self.original = original
        super().__init__(message)


class AuthError(ProviderError):
    """Provider rejected the API key (401 / unauthorized)."""

    status_code = 401


class RateLimitError(ProviderError):
    """Provider answered 429."""

    status_code = 429


class RequestTimeoutError(ProviderError):
    """Call exceeded its stage timeout and was cancelled."""

    status_code = 504


class EmptyResponseError(ProviderError):
    """Provider returned blank text."""

    status_code = 502


class ParseError(ContentformerError):
    """Ideas-stage output could not be coerced into a JSON array."""

    status_code = 502
