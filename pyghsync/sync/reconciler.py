"""Reconciles pending changes against the remote repository."""

import asyncio
import logging
from collections.abc import Awaitable, Mapping
from pathlib import Path
from typing import Optional, TypeVar

from ..api import GitHubClient
from ..exceptions import (
    InvalidResponseError,
    RemoteConflictError,
    RemoteError,
    TransportError,
)
from ..models import Content, PassResult, RemoteFileHandle, is_tombstone
from ..summarizer import Summarizer, summarize_or_placeholder
from ..utils import LOG_FILE_NAME, commit_message, format_log_entry, git_blob_sha
from .ignore import is_path_ignored

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_unchanged(handle: RemoteFileHandle, content: str) -> bool:
    """Check whether the remote file already holds ``content``.

    Falls back to comparing the blob sha when the fetched handle carries
    no decoded content.
    """
    if not handle.exists:
        return False
    return handle.content == content or handle.version_token == git_blob_sha(content)


class RemoteReconciler:
    """Writes drained changes to the remote repository.

    Every remote call uses optimistic concurrency: the current version
    token is fetched right before the write and sent along with it, so a
    concurrent remote edit surfaces as a RemoteConflictError instead of
    being overwritten. Failures are contained per path.
    """

    def __init__(
        self,
        client: GitHubClient,
        summarizer: Summarizer,
        repo: str,
        root: Path,
        timeout: Optional[float] = 30.0,
        log_path: str = LOG_FILE_NAME,
    ):
        """Initialize the reconciler.

        Args:
            client: GitHub API client
            summarizer: Change summarizer
            repo: Repository name
            root: Monitored root directory (for ignore rules)
            timeout: Upper bound in seconds for each network call
            log_path: Repository path of the append-only change log
        """
        self.client = client
        self.summarizer = summarizer
        self.repo = repo
        self.root = root
        self.timeout = timeout
        self.log_path = log_path

    async def _bounded(self, operation: Awaitable[T], what: str) -> T:
        """Await a network operation, turning a timeout into TransportError."""
        try:
            return await asyncio.wait_for(operation, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise TransportError(f"{what} timed out after {self.timeout}s") from e

    async def fetch(self, path: str) -> RemoteFileHandle:
        return await self._bounded(self.client.get_file(self.repo, path), f"GET {path}")

    async def upsert(
        self,
        path: str,
        content: str,
        message: str,
        skip_unchanged: bool = True,
        handle: Optional[RemoteFileHandle] = None,
    ) -> bool:
        """Write ``content`` to ``path`` using the current version token.

        Args:
            path: Repository path
            content: New file text
            message: Commit message
            skip_unchanged: Skip the write if the remote already holds ``content``
            handle: Freshly fetched remote state (fetched here if omitted)

        Returns:
            True if a write was issued, False if skipped as unchanged

        Raises:
            RemoteConflictError: If the remote changed since it was fetched
            RemoteError: On any other remote failure, including timeouts
        """
        if handle is None:
            handle = await self.fetch(path)
        if handle.is_directory:
            raise InvalidResponseError(f"'{path}' is a directory in {self.repo}")
        if skip_unchanged and is_unchanged(handle, content):
            logger.debug(f"Unchanged, not writing: {path}")
            return False

        await self._bounded(
            self.client.put_file(
                self.repo, path, content, message, version_token=handle.version_token
            ),
            f"PUT {path}",
        )
        logger.debug(f"Committed {path}")
        return True

    async def _reconcile_path(
        self, path: str, content: Content, message: str, result: PassResult
    ) -> Optional[str]:
        """Reconcile one path.

        Returns:
            Log entry for the path, or None if nothing was written
        """
        if is_path_ignored(self.root, path):
            result.ignored += 1
            return None

        handle = await self.fetch(path)
        deleted = is_tombstone(content)
        new_text = "" if deleted else str(content)

        if deleted and handle.is_directory:
            # Files below a removed directory arrive as their own deletions
            logger.debug(f"Skipping removal of directory {path}")
            result.unchanged += 1
            return None
        if deleted and not handle.exists:
            result.unchanged += 1
            return None
        if not deleted and is_unchanged(handle, new_text):
            result.unchanged += 1
            return None

        summary = await summarize_or_placeholder(
            self.summarizer, handle.content or "", new_text, timeout=self.timeout
        )

        if deleted:
            # handle.version_token is set: the file exists remotely
            await self._bounded(
                self.client.delete_file(
                    self.repo, path, str(handle.version_token), message
                ),
                f"DELETE {path}",
            )
            result.deleted += 1
            logger.debug(f"Deleted {path}")
        else:
            await self.upsert(path, new_text, message, handle=handle)
            result.written += 1

        return format_log_entry(path, summary)

    async def run_pass(
        self, snapshot: Mapping[str, Content], message: Optional[str] = None
    ) -> PassResult:
        """Run one sync cycle pass over a drained ledger snapshot.

        Each path is processed independently: a conflict or failure on one
        path is logged and does not stop the others. Once every path is
        done, the collected summaries are appended to the change log.

        Args:
            snapshot: Mapping of relative path to content or TOMBSTONE
            message: Commit message (defaults to a timestamped one)

        Returns:
            PassResult with per-pass statistics
        """
        message = message or commit_message()
        result = PassResult()
        log_buffer = ""

        for path, content in snapshot.items():
            try:
                entry = await self._reconcile_path(path, content, message, result)
            except RemoteConflictError as e:
                result.conflicts += 1
                logger.warning(f"Conflict on {path}, skipping for this pass: {e}")
                continue
            except RemoteError as e:
                result.failed += 1
                logger.warning(f"Failed to sync {path}: {e}")
                continue

            if entry:
                log_buffer += entry
                result.entries.append(path)

        if log_buffer:
            result.log_appended = await self.append_log(log_buffer, message)

        logger.info(
            f"Sync pass complete: {result.written} written, {result.deleted} deleted, "
            f"{result.unchanged} unchanged, {result.conflicts} conflicts, "
            f"{result.failed} failed"
        )
        return result

    async def append_log(self, text: str, message: str, attempts: int = 2) -> bool:
        """Append ``text`` to the remote change log.

        Uses the same fetch-then-write protocol as file content; a conflict
        is retried with a fresh fetch.

        Returns:
            True if the log was written
        """
        for attempt in range(attempts):
            try:
                handle = await self.fetch(self.log_path)
                await self.upsert(
                    self.log_path,
                    (handle.content or "") + "\n" + text,
                    message,
                    skip_unchanged=False,
                    handle=handle,
                )
                logger.info(f"{self.log_path} updated")
                return True
            except RemoteConflictError as e:
                logger.debug(
                    f"Conflict appending to {self.log_path} ({attempt + 1}): {e}"
                )
            except RemoteError as e:
                logger.warning(f"Failed to update {self.log_path}: {e}")
                return False

        logger.warning(f"Giving up on {self.log_path} after {attempts} conflicts")
        return False
