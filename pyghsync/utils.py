"""Utility functions for pyghsync."""

import base64
import hashlib
from datetime import datetime
from typing import Optional

# =============================================================================
# Constants for sync operations
# =============================================================================

# Ignore file read from the monitored root and its subdirectories
IGNORE_FILE_NAME: str = ".gitignore"

# Append-only log artifact holding the generated change summaries
LOG_FILE_NAME: str = "log.txt"

# Commit message used for files written by the bulk importer
INITIAL_IMPORT_MESSAGE: str = "Initial import"

# Substituted when the summarizer is unavailable
SUMMARY_PLACEHOLDER: str = "Could not generate summary."

# Retry configuration for transient errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds

# Directories never mirrored, regardless of ignore rules
ALWAYS_SKIPPED_DIRS: frozenset = frozenset({".git"})


# =============================================================================
# Content encoding utilities
# =============================================================================


def encode_content(text: str) -> str:
    """Encode text for the contents API (UTF-8, then base64).

    Examples:
        >>> encode_content("hello")
        'aGVsbG8='
    """
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_content(encoded: Optional[str]) -> str:
    """Decode base64 content returned by the contents API.

    GitHub wraps the base64 payload at 60 columns, so embedded newlines
    are stripped before decoding.

    Examples:
        >>> decode_content("aGVs\\nbG8=")
        'hello'
    """
    if not encoded:
        return ""
    raw = base64.b64decode("".join(encoded.split()))
    return raw.decode("utf-8", errors="replace")


def git_blob_sha(text: str) -> str:
    """Compute the git blob SHA-1 of text, as GitHub reports it.

    Examples:
        >>> git_blob_sha("")
        'e69de29bb2d1d6434b8b29ae775ad8c2e48c5391'
    """
    data = text.encode("utf-8")
    header = f"blob {len(data)}\0".encode("ascii")
    return hashlib.sha1(header + data).hexdigest()


# =============================================================================
# Commit message utilities
# =============================================================================


def commit_message(now: Optional[datetime] = None) -> str:
    """Build the commit message for a sync cycle.

    Examples:
        >>> commit_message(datetime(2024, 5, 1, 9, 30, 0))
        'Automated commit: 2024-05-01 09:30:00'
    """
    now = now or datetime.now()
    return f"Automated commit: {now.strftime('%Y-%m-%d %H:%M:%S')}"


def format_log_entry(relative_path: str, summary: str) -> str:
    """Format one entry of the remote change log."""
    return f"File: {relative_path}\nSummary: {summary}\n\n"


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"
