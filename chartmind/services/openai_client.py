"""
Shared OpenAI client construction and error mapping
"""

from openai import AsyncOpenAI, APIStatusError, APITimeoutError

from chartmind.config import settings
from chartmind.core.errors import ConfigurationError, UpstreamServiceError
from chartmind.core.security import security_manager


def build_openai_client(timeout: int) -> AsyncOpenAI:
    """Creates an OpenAI client for a single request; upstream calls are never retried."""
    if not settings.openai_api_key:
        raise ConfigurationError("OpenAI API key not configured in .env file")
    return AsyncOpenAI(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout=timeout,
        max_retries=0,
    )


def describe_upstream_error(prefix: str, error: Exception) -> UpstreamServiceError:
    """Maps an OpenAI SDK error to an UpstreamServiceError with a redacted message."""
    if isinstance(error, APIStatusError):
        reason = error.response.reason_phrase if error.response is not None else ""
        message = f"{prefix}: {error.status_code} {reason}".rstrip()
        return UpstreamServiceError(message, status_code=error.status_code)
    if isinstance(error, APITimeoutError):
        return UpstreamServiceError(f"{prefix}: request timed out")
    return UpstreamServiceError(f"{prefix}: {security_manager.redact_secrets(str(error))}")
