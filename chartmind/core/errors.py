"""
Service-level exceptions surfaced to the HTTP layer
"""

from typing import Optional


class ServiceError(Exception):
    """Base class for failures that are reported to the client as a 500."""
    pass


class ConfigurationError(ServiceError):
    """Required configuration (e.g. the OpenAI API key) is missing."""
    pass


class UpstreamServiceError(ServiceError):
    """A third-party API call failed or returned a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
