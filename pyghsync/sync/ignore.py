"""Ignore rules loaded from .gitignore files.

Patterns use gitignore wildcard semantics (``*``, ``**``, ``?``, ``[...]``
and trailing-slash directory patterns). Rule sets are never cached: every
decision re-reads the ignore files, so edits to them take effect on the
next event or sync cycle.
"""

import logging
from pathlib import Path

import pathspec

from ..utils import ALWAYS_SKIPPED_DIRS, IGNORE_FILE_NAME

logger = logging.getLogger(__name__)

IgnoreRuleSet = tuple[str, ...]


def load_ignore_rules(directory: Path) -> IgnoreRuleSet:
    """Load ignore patterns from ``directory``'s ignore file.

    A missing ignore file is a valid "no rules" state, not an error.

    Args:
        directory: Directory that may contain an ignore file

    Returns:
        Non-empty, trimmed, non-comment lines in file order
    """
    ignore_file = directory / IGNORE_FILE_NAME
    try:
        text = ignore_file.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return ()
    except OSError as e:
        logger.warning(f"Could not read {ignore_file}: {e}")
        return ()

    rules = []
    for line in text.splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            rules.append(line)
    return tuple(rules)


def is_ignored(relative_path: str, rule_set: IgnoreRuleSet) -> bool:
    """Check a relative POSIX path against a rule set.

    Args:
        relative_path: Path relative to the directory the rules came from
        rule_set: Patterns from load_ignore_rules

    Returns:
        True if any rule matches the path or one of its parent directories
    """
    if not rule_set:
        return False
    spec = pathspec.PathSpec.from_lines("gitwildmatch", rule_set)
    return spec.match_file(relative_path)


def is_always_skipped(relative_path: str) -> bool:
    """Check whether a path lies inside a directory that is never mirrored."""
    return any(part in ALWAYS_SKIPPED_DIRS for part in relative_path.split("/"))


def is_path_ignored(root: Path, relative_path: str) -> bool:
    """Apply every ignore file between ``root`` and the path's directory.

    The root's rules are matched against the full relative path; the rules
    of each subdirectory are matched against the path relative to that
    subdirectory. The containing directory's own ignore file is always
    consulted.

    Args:
        root: Monitored root directory
        relative_path: POSIX path relative to ``root``; a trailing slash
            marks a directory

    Returns:
        True if the path must not be synced

    Examples:
        >>> is_path_ignored(Path("/data"), ".git/config")
        True
    """
    if is_always_skipped(relative_path):
        return True

    trailing = "/" if relative_path.endswith("/") else ""
    parts = relative_path.rstrip("/").split("/")
    directory = root
    for index in range(len(parts)):
        rules = load_ignore_rules(directory)
        if is_ignored("/".join(parts[index:]) + trailing, rules):
            logger.debug(
                f"Ignoring (from {directory / IGNORE_FILE_NAME}): {relative_path}"
            )
            return True
        directory = directory / parts[index]
    return False
