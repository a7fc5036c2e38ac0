"""Directory scanning utilities for sync operations."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .ignore import is_always_skipped, is_path_ignored

logger = logging.getLogger(__name__)


@dataclass
class LocalFile:
    """Represents a local file with metadata."""

    path: Path
    """Absolute path to the file"""

    relative_path: str
    """Relative path (using forward slashes for cross-platform compatibility)"""

    size: int
    """File size in bytes"""

    @classmethod
    def from_path(cls, file_path: Path, base_path: Path) -> "LocalFile":
        """Create LocalFile from a path.

        Args:
            file_path: Absolute path to the file
            base_path: Base path for calculating relative paths

        Returns:
            LocalFile instance
        """
        stat = file_path.stat()
        # Use as_posix() to ensure forward slashes on all platforms
        relative_path = file_path.relative_to(base_path).as_posix()
        return cls(
            path=file_path,
            relative_path=relative_path,
            size=stat.st_size,
        )

    def read_text(self) -> str:
        """Read the file as UTF-8 text, replacing undecodable bytes.

        Line endings are kept as they are on disk.
        """
        return self.path.read_bytes().decode("utf-8", errors="replace")


class DirectoryScanner:
    """Recursively scans a directory and builds file lists.

    Honors .gitignore files hierarchically: rules from a directory apply
    to everything below it. The .git directory is never scanned.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> files = scanner.scan_local(Path("/sync/folder"))
        >>> # Files matching patterns in .gitignore are excluded
    """

    def __init__(self, use_ignore_files: bool = True):
        """Initialize directory scanner.

        Args:
            use_ignore_files: Whether to apply .gitignore rules
        """
        self.use_ignore_files = use_ignore_files
        self.ignored: list[str] = []
        """Relative paths skipped by ignore rules during the last scan"""

    def should_ignore(self, path: Path, base_path: Path, is_dir: bool = False) -> bool:
        """Check if a path should be ignored.

        Args:
            path: Path to check
            base_path: Base path for relative path calculation
            is_dir: Whether the path is a directory

        Returns:
            True if path should be ignored
        """
        relative_path = path.relative_to(base_path).as_posix()
        if is_always_skipped(relative_path):
            return True
        if not self.use_ignore_files:
            return False
        # Directory patterns such as "build/" only match with a trailing slash
        if is_path_ignored(base_path, relative_path + ("/" if is_dir else "")):
            self.ignored.append(relative_path)
            return True
        return False

    def scan_local(
        self, directory: Path, base_path: Optional[Path] = None
    ) -> list[LocalFile]:
        """Recursively scan a local directory.

        Args:
            directory: Directory to scan
            base_path: Base path for calculating relative paths (defaults to directory)

        Returns:
            List of LocalFile objects, sorted by relative path
        """
        if base_path is None:
            base_path = directory
            self.ignored = []

        files: list[LocalFile] = []

        try:
            for item in directory.iterdir():
                is_dir = item.is_dir()
                if self.should_ignore(item, base_path, is_dir=is_dir):
                    continue

                if item.is_file():
                    try:
                        files.append(LocalFile.from_path(item, base_path))
                    except OSError as e:
                        logger.debug(f"Skipping unreadable file {item}: {e}")
                        continue
                elif is_dir:
                    files.extend(self.scan_local(item, base_path))
        except PermissionError as e:
            logger.warning(f"Permission denied: {e}")

        return sorted(files, key=lambda f: f.relative_path)
