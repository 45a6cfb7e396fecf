"""
Exception hierarchy for polytrans.

Errors are created at the provider boundary and consumed by the router, which
only recovers from the congestion class.
"""

from typing import Optional


CONGESTION_STATUS_CODES = frozenset({429, 503})
AUTH_STATUS_CODE = 401


class PolytransError(Exception):
    """Base class for all polytrans errors."""
    pass


class NoUsableConfigurationError(PolytransError):
    """No step of the routing plan has an API key configured."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message or "No usable API key is configured. Add a key for at least one provider."
        )


class UnsupportedProviderError(PolytransError, ValueError):
    """Provider identifier is not known to the registry."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unsupported provider: {provider}")


class ProviderError(PolytransError):
    """
    Failure reported by (or while talking to) a vendor API.

    Attributes:
        status_code: HTTP status code, when one was received
        message: Human-readable vendor message
        provider: Provider identifier that produced the error
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        provider: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.provider = provider
        super().__init__(self._format())

    def _format(self) -> str:
        prefix = f"{self.provider} API error" if self.provider else "API error"
        if self.status_code is not None:
            return f"{prefix} ({self.status_code}): {self.message}"
        return f"{prefix}: {self.message}"

    @property
    def is_auth_error(self) -> bool:
        return self.status_code == AUTH_STATUS_CODE

    @property
    def is_congestion(self) -> bool:
        """Rate limiting or transient unavailability; recoverable by fallback."""
        return self.status_code in CONGESTION_STATUS_CODES


class RequestTimeoutError(ProviderError):
    """The client-side timeout fired before the vendor answered."""

    def __init__(self, timeout: Optional[float] = None, provider: Optional[str] = None):
        self.timeout = timeout
        super().__init__("Request timed out", status_code=None, provider=provider)


class RequestAbortedError(PolytransError):
    """
    The caller cancelled the operation.

    Not a ProviderError: cancellation is a clean outcome, and the router must
    never treat it as a reason to fall back to another provider.
    """

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason
        super().__init__(reason or "Request aborted")
