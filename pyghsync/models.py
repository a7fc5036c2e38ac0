"""Data models shared across pyghsync."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union


class _Tombstone:
    """Sentinel content marking a path as deleted."""

    _instance: Optional["_Tombstone"] = None

    def __new__(cls) -> "_Tombstone":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "TOMBSTONE"

    def __bool__(self) -> bool:
        return False


TOMBSTONE = _Tombstone()

Content = Union[str, _Tombstone]


def is_tombstone(content: Content) -> bool:
    """Check whether content is the deletion sentinel."""
    return content is TOMBSTONE


class ChangeKind(str, Enum):
    """Kinds of filesystem events the watch source emits."""

    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass(frozen=True)
class WatchEvent:
    """A single filesystem event."""

    kind: ChangeKind
    """What happened to the path"""

    path: Path
    """Absolute path of the affected file"""


@dataclass(frozen=True)
class ChangeRecord:
    """Latest observed state of a path pending sync."""

    relative_path: str
    """POSIX path relative to the monitored root"""

    content: Content
    """File text, or TOMBSTONE for deletions"""


@dataclass
class RemoteFileHandle:
    """Remote store's current state for a path.

    A ``version_token`` of None means the file does not exist remotely yet.
    ``is_directory`` is set when the path names a directory instead of a file.
    """

    path: str
    version_token: Optional[str] = None
    content: Optional[str] = None
    is_directory: bool = False

    @property
    def exists(self) -> bool:
        return self.version_token is not None


@dataclass
class PassResult:
    """Statistics for one sync cycle pass."""

    written: int = 0
    deleted: int = 0
    unchanged: int = 0
    ignored: int = 0
    conflicts: int = 0
    failed: int = 0
    log_appended: bool = False
    entries: list[str] = field(default_factory=list)
    """Relative paths that produced a log entry"""

    @property
    def total_changes(self) -> int:
        return self.written + self.deleted


@dataclass
class ImportResult:
    """Statistics for a bulk import."""

    uploaded: int = 0
    unchanged: int = 0
    ignored: int = 0
    failed: int = 0
