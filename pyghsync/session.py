"""Monitoring sessions: start, run and stop the mirror of one directory."""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .api import GitHubClient
from .exceptions import ClientInputError
from .models import ImportResult
from .summarizer import Summarizer
from .sync.importer import BulkImporter
from .sync.ledger import ChangeLedger
from .sync.reconciler import RemoteReconciler
from .sync.scheduler import SyncScheduler
from .sync.watcher import WatchSource, consume_events

logger = logging.getLogger(__name__)


class RepoAction(str, Enum):
    """What to do with the target repository at session start."""

    CREATE = "create"
    USE_EXISTING = "use-existing"


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


@dataclass
class SessionRequest:
    """Parameters of the session start command."""

    directory_path: Optional[str]
    repo: Optional[str]
    repo_action: Optional[str]
    visibility: Optional[str]
    import_existing: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionRequest":
        """Create a request from loosely typed input (form fields, JSON).

        ``import_existing`` accepts booleans and the strings "true"/"false".
        """
        import_existing = data.get("import_existing", False)
        if isinstance(import_existing, str):
            import_existing = import_existing.strip().lower() in ("true", "1", "yes")
        return cls(
            directory_path=data.get("directory_path"),
            repo=data.get("repo"),
            repo_action=data.get("repo_action"),
            visibility=data.get("visibility"),
            import_existing=bool(import_existing),
        )

    def validate(self) -> None:
        """Check that every required field is present and valid.

        Raises:
            ClientInputError: If a field is missing or has an invalid value
        """
        missing = [
            name
            for name in ("directory_path", "repo", "repo_action", "visibility")
            if not getattr(self, name)
        ]
        if missing:
            raise ClientInputError(f"Missing parameters: {', '.join(missing)}")

        actions = [a.value for a in RepoAction]
        if self.repo_action not in actions:
            raise ClientInputError(
                f"Invalid repo action {self.repo_action!r}, expected one of {actions}"
            )
        visibilities = [v.value for v in Visibility]
        if self.visibility not in visibilities:
            raise ClientInputError(
                f"Invalid visibility {self.visibility!r}, expected one of {visibilities}"
            )

    @property
    def private(self) -> bool:
        return self.visibility == Visibility.PRIVATE.value


class MonitoringSession:
    """Mirrors one directory into one repository.

    A session owns all of its state (ledger, watch source, scheduler), so
    any number of sessions can run side by side in one event loop.

    Example:
        ```python
        session = MonitoringSession(request, client, summarizer)
        print(await session.start())
        await session.wait()
        ```
    """

    def __init__(
        self,
        request: SessionRequest,
        client: GitHubClient,
        summarizer: Summarizer,
        interval: float = 10.0,
        timeout: Optional[float] = 30.0,
        source: Optional[WatchSource] = None,
    ):
        """Initialize the session.

        Args:
            request: Session start parameters
            client: GitHub API client
            summarizer: Change summarizer
            interval: Seconds between sync cycles
            timeout: Upper bound in seconds for each network call
            source: Watch source (defaults to a WatchSource on the directory)
        """
        self.request = request
        self.client = client
        self.summarizer = summarizer
        self.interval = interval
        self.timeout = timeout
        self._source = source

        self.root: Optional[Path] = None
        self.ledger = ChangeLedger()
        self.reconciler: Optional[RemoteReconciler] = None
        self.scheduler: Optional[SyncScheduler] = None
        self.import_result: Optional[ImportResult] = None
        self._tasks: list[asyncio.Task] = []
        self._stopped = asyncio.Event()

    @property
    def running(self) -> bool:
        return bool(self._tasks) and not self._stopped.is_set()

    async def _prepare_repo(self) -> None:
        repo = str(self.request.repo)
        if self.request.repo_action == RepoAction.CREATE.value:
            await self.client.create_repo(repo, private=self.request.private)
        elif not await self.client.repo_exists(repo):
            raise ClientInputError(f"Repository not found: {repo}")

    async def start(self) -> str:
        """Validate the request, prepare the repository and begin watching.

        Returns:
            Acknowledgment message

        Raises:
            ClientInputError: If the request is invalid, the directory does
                not exist, or an existing repository was requested but not found
            RemoteError: If creating or checking the repository fails
        """
        self.request.validate()

        root = Path(str(self.request.directory_path)).expanduser()
        if not root.is_dir():
            raise ClientInputError(f"Folder not found: {root}")
        self.root = root.resolve()
        repo = str(self.request.repo)

        await self._prepare_repo()

        self.reconciler = RemoteReconciler(
            self.client, self.summarizer, repo, self.root, timeout=self.timeout
        )
        self.scheduler = SyncScheduler(self.ledger, self.reconciler, self.interval)

        # The watch is live before the import reads any file
        if self._source is None:
            self._source = WatchSource(self.root)
        consumer = asyncio.ensure_future(
            consume_events(self._source, self.root, self.ledger)
        )
        await asyncio.sleep(0)

        if self.request.import_existing:
            importer = BulkImporter(self.reconciler, self.root)
            try:
                self.import_result = await importer.run()
            except BaseException:
                self._source.stop()
                consumer.cancel()
                raise

        self._tasks = [consumer, asyncio.ensure_future(self.scheduler.run())]
        logger.info(f"Monitoring: {self.root}")
        return f"Monitoring {self.root} and syncing with {repo}"

    async def stop(self) -> None:
        """Stop watching, wait for any running pass and flush pending changes."""
        if self._stopped.is_set():
            return
        if self._source is not None:
            self._source.stop()
        if self.scheduler is not None:
            self.scheduler.stop()

        for task in self._tasks:
            if not task.done():
                try:
                    await asyncio.wait_for(task, timeout=self.interval)
                except asyncio.TimeoutError:
                    logger.debug(f"Task {task!r} did not finish, cancelled")
                except Exception as e:
                    logger.warning(f"Session task ended with an error: {e}")
        if self.scheduler is not None:
            await self.scheduler.flush()
        self._stopped.set()
        logger.info("Monitoring stopped")

    async def wait(self) -> None:
        """Block until the session is stopped."""
        await self._stopped.wait()

    async def __aenter__(self) -> "MonitoringSession":
        await self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.stop()


async def start_session(
    request: SessionRequest,
    client: GitHubClient,
    summarizer: Summarizer,
    **kwargs: Any,
) -> tuple[MonitoringSession, str]:
    """Start a monitoring session.

    Args:
        request: Session start parameters
        client: GitHub API client
        summarizer: Change summarizer
        **kwargs: Extra MonitoringSession arguments (interval, timeout, source)

    Returns:
        Tuple of (running session, acknowledgment message)
    """
    session = MonitoringSession(request, client, summarizer, **kwargs)
    ack = await session.start()
    return session, ack
