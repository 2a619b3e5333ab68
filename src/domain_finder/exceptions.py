"""
Exception classes for the domain finder system.

All exceptions inherit from DomainFinderError and provide structured
error information with codes, messages, and optional details.

Provider errors are raised by availability providers and are always caught
by the resolver, which turns them into fallback attempts. Only generator
failures and a fully exhausted provider chain end a search session.
"""

from typing import Optional


class DomainFinderError(Exception):
    """Base exception for all domain finder errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(DomainFinderError):
    """Raised when a description or TLD is rejected before searching."""

    pass


class ConfigurationError(DomainFinderError):
    """Raised when configuration values cannot be used."""

    pass


class GenerationError(DomainFinderError):
    """
    Raised when the name generator fails.

    ``retryable`` marks upstream hiccups (timeouts, 5xx) that a bounded
    retry may fix; missing credentials or empty output are not retryable.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(code, message, details)
        self.retryable = retryable


class ProviderError(DomainFinderError):
    """Raised when an availability provider cannot produce verdicts."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
        provider: Optional[str] = None,
    ) -> None:
        super().__init__(code, message, details)
        self.provider = provider


class CredentialsMissing(ProviderError):
    """Raised when a provider is invoked without usable credentials."""

    pass


class Unauthorized(ProviderError):
    """Raised on 401/403-class rejections; retrying will not help."""

    pass


class RateLimited(ProviderError):
    """Raised when the provider throttles us (HTTP 429 or API limit errors)."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
        provider: Optional[str] = None,
        retry_after_seconds: Optional[float] = None,
    ) -> None:
        super().__init__(code, message, details, provider)
        self.retry_after_seconds = retry_after_seconds


class MalformedResponse(ProviderError):
    """Raised when a provider response cannot be parsed or is incomplete."""

    pass


class NetworkError(ProviderError):
    """Raised when transport to the provider fails."""

    pass
