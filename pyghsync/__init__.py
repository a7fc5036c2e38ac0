"""pyghsync - mirror a local folder to a GitHub repository as it changes."""

from .api import GitHubClient
from .exceptions import (
    AuthenticationError,
    ClientInputError,
    ConfigError,
    GhSyncError,
    InvalidResponseError,
    PermissionDeniedError,
    RateLimitError,
    RemoteConflictError,
    RemoteError,
    RemoteNotFoundError,
    SummarizerError,
    TransportError,
)
from .models import TOMBSTONE, RemoteFileHandle
from .session import MonitoringSession, SessionRequest, start_session
from .summarizer import GeminiSummarizer, StaticSummarizer

__all__ = [
    "GitHubClient",
    "GeminiSummarizer",
    "StaticSummarizer",
    "MonitoringSession",
    "SessionRequest",
    "start_session",
    "RemoteFileHandle",
    "TOMBSTONE",
    "AuthenticationError",
    "ClientInputError",
    "ConfigError",
    "GhSyncError",
    "InvalidResponseError",
    "PermissionDeniedError",
    "RateLimitError",
    "RemoteConflictError",
    "RemoteError",
    "RemoteNotFoundError",
    "SummarizerError",
    "TransportError",
]
