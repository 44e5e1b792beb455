"""Error taxonomy for the chat proxy.

Every failure raised inside the service maps to one of these classes, and
the orchestrator / HTTP layer converts each into a well-formed response.
"""


class SingularError(Exception):
    """Base class for all service errors."""


class ValidationError(SingularError):
    """Required request input is missing or malformed (HTTP 400)."""


class ConfigurationError(SingularError):
    """The provider credential is not configured (HTTP 500)."""


class ProviderError(SingularError):
    """The language-model provider failed or returned a malformed reply."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PersistenceError(SingularError):
    """A record store insert, update, delete or select failed."""


class EmptySaveRequest(SingularError):
    """A save directive was recognised but no content could be resolved."""
