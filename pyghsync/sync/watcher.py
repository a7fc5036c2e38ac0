"""Filesystem watch source feeding the change ledger."""

import asyncio
import logging
from collections.abc import AsyncIterator
from pathlib import Path

from watchfiles import Change, awatch

from ..models import TOMBSTONE, ChangeKind, Content, WatchEvent
from .ignore import is_always_skipped, is_path_ignored
from .ledger import ChangeLedger

logger = logging.getLogger(__name__)

_CHANGE_KINDS = {
    Change.added: ChangeKind.ADDED,
    Change.modified: ChangeKind.MODIFIED,
    Change.deleted: ChangeKind.REMOVED,
}


class WatchSource:
    """Lazy, cancellable stream of filesystem events under a directory.

    Only changes made after the watch starts produce events; files that
    already exist are left to the bulk importer. Each ``WatchSource`` can
    be iterated once per session; ``stop()`` ends the iteration and
    releases the OS-level watch handle.

    Example:
        ```python
        source = WatchSource(Path("/data/notes"))
        async for event in source:
            print(event.kind, event.path)
        ```
    """

    def __init__(self, root: Path, debounce_ms: int = 100):
        """Initialize the watch source.

        Args:
            root: Directory to watch recursively
            debounce_ms: Window in which raw OS events are grouped
        """
        self.root = root
        self.debounce_ms = debounce_ms
        self._stop_event = asyncio.Event()

    def stop(self) -> None:
        """Signal the watch to end; the iterator finishes on its next wakeup."""
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    async def events(self) -> AsyncIterator[WatchEvent]:
        """Yield events as they happen until ``stop()`` is called."""
        async for changes in awatch(
            self.root,
            watch_filter=None,
            debounce=self.debounce_ms,
            stop_event=self._stop_event,
            recursive=True,
        ):
            for change, raw_path in sorted(changes, key=lambda c: c[1]):
                yield WatchEvent(kind=_CHANGE_KINDS[change], path=Path(raw_path))

    def __aiter__(self) -> AsyncIterator[WatchEvent]:
        return self.events()


def read_current_content(path: Path) -> Content:
    """Read a file's current text, or TOMBSTONE if it no longer exists.

    Bytes are decoded without newline translation, so CRLF endings survive.
    """
    try:
        return path.read_bytes().decode("utf-8", errors="replace")
    except FileNotFoundError:
        return TOMBSTONE


def fold_event(event: WatchEvent, root: Path, ledger: ChangeLedger) -> bool:
    """Fold a filesystem event into the ledger if its path is eligible.

    Content is read from disk at fold time, so the ledger always reflects
    the latest state of the file. A removal whose file has since been
    recreated records the recreated content.

    Args:
        event: Event from the watch source
        root: Monitored root directory
        ledger: Ledger of pending changes

    Returns:
        True if the event was recorded, False if it was skipped
    """
    try:
        relative_path = event.path.relative_to(root).as_posix()
    except ValueError:
        logger.debug(f"Skipping event outside monitored root: {event.path}")
        return False

    if event.path.is_dir() or is_always_skipped(relative_path):
        return False

    if is_path_ignored(root, relative_path):
        return False

    if event.kind == ChangeKind.REMOVED and not event.path.exists():
        content: Content = TOMBSTONE
    else:
        content = read_current_content(event.path)

    ledger.record(relative_path, content)
    logger.info(f"Change detected: {relative_path} ({event.kind.value})")
    return True


async def consume_events(
    source: AsyncIterator[WatchEvent], root: Path, ledger: ChangeLedger
) -> None:
    """Fold every event from ``source`` into ``ledger`` until it ends.

    A file that cannot be read is logged and skipped; the watch continues.
    """
    async for event in source:
        try:
            fold_event(event, root, ledger)
        except OSError as e:
            logger.warning(f"Could not read {event.path}: {e}")
