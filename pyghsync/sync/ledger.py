"""In-memory ledger of changes pending sync."""

import logging
from collections.abc import Iterator
from typing import Optional

from ..models import ChangeRecord, Content, is_tombstone

logger = logging.getLogger(__name__)


class ChangeLedger:
    """Maps relative paths to their latest observed content.

    Repeated updates to the same path between sync cycles collapse into a
    single record (last write wins). The ledger is owned by one monitoring
    session; the watch source records into it and the scheduler drains it.

    Examples:
        >>> ledger = ChangeLedger()
        >>> ledger.record("a.txt", "one")
        >>> ledger.record("a.txt", "two")
        >>> ledger.drain()
        {'a.txt': 'two'}
        >>> len(ledger)
        0
    """

    def __init__(self) -> None:
        self._pending: dict[str, Content] = {}

    def record(self, relative_path: str, content: Content) -> None:
        """Record the latest state of a path, replacing any pending record.

        Args:
            relative_path: POSIX path relative to the monitored root
            content: File text, or TOMBSTONE for a deletion
        """
        replaced = relative_path in self._pending
        self._pending[relative_path] = content
        logger.debug(
            f"{'Updated' if replaced else 'Recorded'} pending change: "
            f"{relative_path}{' (deleted)' if is_tombstone(content) else ''}"
        )

    def drain(self) -> dict[str, Content]:
        """Swap in a fresh empty mapping and return the previous one.

        This is synchronous, so no event can be folded in between taking
        the snapshot and clearing the ledger.

        Returns:
            Snapshot of all pending changes
        """
        snapshot, self._pending = self._pending, {}
        return snapshot

    def get(self, relative_path: str) -> Optional[ChangeRecord]:
        if relative_path not in self._pending:
            return None
        return ChangeRecord(relative_path, self._pending[relative_path])

    def __len__(self) -> int:
        return len(self._pending)

    def __bool__(self) -> bool:
        return bool(self._pending)

    def __contains__(self, relative_path: object) -> bool:
        return relative_path in self._pending

    def __iter__(self) -> Iterator[ChangeRecord]:
        for path, content in self._pending.items():
            yield ChangeRecord(path, content)
