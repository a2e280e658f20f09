"""
Base Service Interface

All services inherit from this base class.
"""

from abc import ABC, abstractmethod


class BaseService(ABC):
    """
    Base class for all services.

    Each service:
    - Has a name used in logs and errors
    - Can check its health
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Service name for logging."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if service is healthy and can process requests."""
        pass


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, service_name: str, message: str, details: dict = None):
        self.service_name = service_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{service_name}] {message}")


class ValidationError(ServiceError):
    """Input validation error."""
    pass


class MalformedInputError(ValidationError):
    """Candle sequence violates basic shape (unsorted, non-finite values)."""
    pass


class InsufficientDataError(ServiceError):
    """Not enough candles to produce a complete indicator set."""

    reason = "insufficient_data"

    def __init__(self, service_name: str, message: str = None, details: dict = None):
        super().__init__(
            service_name,
            message or "Insufficient data to calculate indicators",
            details,
        )


class ExternalAPIError(ServiceError):
    """External API call failed."""
    pass


class DataSourceError(ExternalAPIError):
    """Upstream candle/price fetch failed. Fatal to the current request."""
    pass


class CacheUnavailableError(ServiceError):
    """Snapshot store read/write failed. Callers degrade to compute."""
    pass
