"""Error taxonomy for food resolution."""

from enum import StrEnum


class FoodResolverError(Exception):
    """Base class for resolver errors."""


class InvalidQueryError(FoodResolverError, ValueError):
    """Raised when a food query is malformed."""


class ProviderErrorKind(StrEnum):
    """Failure categories reported by provider clients."""

    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"
    MALFORMED_RESPONSE = "malformed_response"


class ProviderError(FoodResolverError):
    """A provider failed to answer; never fatal to a resolution."""

    def __init__(
        self, provider_id: str, kind: ProviderErrorKind, message: str = ""
    ) -> None:
        self.provider_id = provider_id
        self.kind = kind
        self.message = message
        detail = f"{provider_id}: {kind.value}"
        super().__init__(f"{detail} ({message})" if message else detail)


class NoResultsError(FoodResolverError):
    """No provider result and no estimate permitted for a query."""

    def __init__(self, message: str, *, quota_exceeded: bool = False) -> None:
        self.quota_exceeded = quota_exceeded
        super().__init__(message)
