"""Error taxonomy shared by the provider clients and the pipeline."""

from typing import Optional


class AutoAddError(Exception):
    """Base class for every error raised by rd-autoadd."""


class ConfigError(AutoAddError):
    """Configuration is unreadable or invalid. Fatal before any network call."""


class DataError(AutoAddError):
    """A release index entry cannot be turned into a candidate."""


class ProviderError(AutoAddError):
    """An external service answered with an error or could not be reached."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class AuthError(ProviderError):
    """Credential missing or rejected by a provider."""


class TransientProviderError(ProviderError):
    """Rate limit, timeout or gateway error. Safe to retry with backoff."""


class ProviderBlockedError(ProviderError):
    """Persistent 403 on an endpoint. Callers degrade instead of retrying."""


class RequestTimeoutError(TransientProviderError):
    """No response within the per-call timeout."""
