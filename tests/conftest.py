"""Shared fakes and fixtures for the pyghsync tests."""

import asyncio
import tempfile
from pathlib import Path
from typing import Optional

import pytest

from pyghsync.exceptions import RemoteConflictError, RemoteError
from pyghsync.models import RemoteFileHandle


class FakeRemoteStore:
    """In-memory stand-in for GitHubClient with versioned writes.

    Writes with a stale or missing version token are rejected with
    RemoteConflictError, like the real contents API.
    """

    def __init__(self, repos: Optional[set] = None):
        self.repos = set(repos) if repos is not None else {"repo"}
        self.files: dict[str, tuple[str, str]] = {}
        self.writes: list[tuple[str, str, str]] = []
        self.deletes: list[str] = []
        self.created: list[tuple[str, bool]] = []
        self._version = 0

    def _next_token(self) -> str:
        self._version += 1
        return f"v{self._version}"

    def seed(self, path: str, content: str) -> str:
        """Put a file in the store without recording a write."""
        token = self._next_token()
        self.files[path] = (token, content)
        return token

    def content(self, path: str) -> Optional[str]:
        entry = self.files.get(path)
        return entry[1] if entry else None

    def writes_for(self, path: str) -> list[str]:
        return [content for p, content, _ in self.writes if p == path]

    async def repo_exists(self, repo: str) -> bool:
        return repo in self.repos

    async def create_repo(self, repo: str, private: bool = True) -> None:
        if repo in self.repos:
            raise RemoteError("name already exists on this account")
        self.repos.add(repo)
        self.created.append((repo, private))

    async def get_file(self, repo: str, path: str) -> RemoteFileHandle:
        if path not in self.files:
            if any(p.startswith(path + "/") for p in self.files):
                return RemoteFileHandle(path=path, is_directory=True)
            return RemoteFileHandle(path=path)
        token, content = self.files[path]
        return RemoteFileHandle(path=path, version_token=token, content=content)

    async def put_file(
        self,
        repo: str,
        path: str,
        content: str,
        message: str,
        version_token: Optional[str] = None,
    ) -> str:
        current = self.files.get(path)
        current_token = current[0] if current else None
        if current_token != version_token:
            raise RemoteConflictError(f"{path} does not match {version_token}")
        token = self._next_token()
        self.files[path] = (token, content)
        self.writes.append((path, content, message))
        return token

    async def delete_file(
        self, repo: str, path: str, version_token: str, message: str
    ) -> None:
        current = self.files.get(path)
        if current is None or current[0] != version_token:
            raise RemoteConflictError(f"{path} does not match {version_token}")
        del self.files[path]
        self.deletes.append(path)


class RecordingSummarizer:
    """Summarizer returning a predictable text and recording its calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    async def summarize(self, old_text: str, new_text: str) -> str:
        self.calls.append((old_text, new_text))
        return f"changed {len(old_text)} -> {len(new_text)} chars"


class FailingSummarizer:
    """Summarizer that is always down."""

    async def summarize(self, old_text: str, new_text: str) -> str:
        raise RuntimeError("summarizer outage")


class QueueSource:
    """Watch source fed by the test instead of the filesystem."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue = asyncio.Queue()
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True
        self.queue.put_nowait(None)

    async def _iterate(self):
        while True:
            event = await self.queue.get()
            if event is None:
                return
            yield event

    def __aiter__(self):
        return self._iterate()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def store():
    return FakeRemoteStore()


@pytest.fixture
def summarizer():
    return RecordingSummarizer()
