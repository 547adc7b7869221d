"""SiteQuote error handling.

Custom exceptions and error codes for the analysis pipeline.
"""

from typing import Optional, Dict, Any, List


# Error Codes
class ErrorCode:
    """Error code constants."""

    # Validation Errors (1xxx)
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Provider Errors (2xxx)
    PROVIDER_ERROR = "PROVIDER_ERROR"
    PROVIDER_TIMEOUT = "PROVIDER_TIMEOUT"
    PROVIDER_INVALID_RESPONSE = "PROVIDER_INVALID_RESPONSE"
    ALL_PROVIDERS_FAILED = "ALL_PROVIDERS_FAILED"

    # Pricing Errors (3xxx)
    PRICING_FETCH_FAILED = "PRICING_FETCH_FAILED"

    # Internal Errors (9xxx)
    INTERNAL_ERROR = "INTERNAL_ERROR"


class SiteQuoteError(Exception):
    """Base exception for SiteQuote errors.

    Provides structured error information for API responses.

    Attributes:
        code: Error code from ErrorCode constants
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API response.

        Returns:
            Dictionary with code, message, and details.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class InvalidRequestError(SiteQuoteError):
    """Malformed inbound request. The only error a caller ever sees."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            details={**(details or {}), "field": field} if field else details
        )
        self.field = field


class ProviderError(SiteQuoteError):
    """Backend failure attributed to a single provider."""

    def __init__(
        self,
        message: str,
        provider_name: str,
        code: str = ErrorCode.PROVIDER_ERROR,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details={**(details or {}), "provider": provider_name}
        )
        self.provider_name = provider_name


class ProviderTimeoutError(ProviderError):
    """Provider did not answer within the configured timeout."""

    def __init__(self, provider_name: str, timeout_ms: int):
        super().__init__(
            message=f"Provider {provider_name} timed out after {timeout_ms}ms",
            provider_name=provider_name,
            code=ErrorCode.PROVIDER_TIMEOUT,
            details={"timeout_ms": timeout_ms}
        )
        self.timeout_ms = timeout_ms


class ProviderInvalidResponseError(ProviderError):
    """Provider answered, but the text could not be parsed into an analysis."""

    def __init__(self, message: str, provider_name: str, raw_excerpt: Optional[str] = None):
        super().__init__(
            message=message,
            provider_name=provider_name,
            code=ErrorCode.PROVIDER_INVALID_RESPONSE,
            details={"raw_excerpt": raw_excerpt} if raw_excerpt else None
        )


class AllProvidersFailedError(SiteQuoteError):
    """Primary and every fallback provider failed."""

    def __init__(self, failures: List[Dict[str, str]]):
        last = failures[-1]["error"] if failures else "no provider available"
        super().__init__(
            code=ErrorCode.ALL_PROVIDERS_FAILED,
            message=f"All AI providers failed. Last error: {last}",
            details={"failures": failures}
        )
        self.failures = failures


class PricingFetchError(SiteQuoteError):
    """Market pricing could not be computed and estimate fallback is disabled."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.PRICING_FETCH_FAILED,
            message=message,
            details=details
        )
