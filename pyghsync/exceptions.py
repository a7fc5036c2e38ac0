"""Exceptions raised by pyghsync."""


class GhSyncError(Exception):
    """Base exception for all pyghsync errors."""


class ConfigError(GhSyncError):
    """Raised when required configuration (token, username) is missing."""


class ClientInputError(GhSyncError):
    """Raised when session parameters are missing or invalid.

    Rejected before any side effect takes place.
    """


class RemoteError(GhSyncError):
    """Base exception for failures talking to the remote repository."""


class AuthenticationError(RemoteError):
    """Raised when the token is invalid or missing (HTTP 401)."""


class PermissionDeniedError(RemoteError):
    """Raised when the token lacks access to a resource (HTTP 403)."""


class RateLimitError(RemoteError):
    """Raised when the API rate limit is exceeded (HTTP 429)."""


class RemoteNotFoundError(RemoteError):
    """Raised when a remote resource does not exist (HTTP 404).

    Callers treat this as a valid "create new" signal rather than a failure.
    """


class RemoteConflictError(RemoteError):
    """Raised when a write is rejected because its version token is stale."""


class TransportError(RemoteError):
    """Raised on network-level failures, including timeouts."""


class InvalidResponseError(RemoteError):
    """Raised when the remote answers with something we cannot parse."""


class SummarizerError(GhSyncError):
    """Raised when the summarization service fails."""
