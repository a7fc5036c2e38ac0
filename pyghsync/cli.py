"""CLI interface for pyghsync."""

import asyncio
import logging
import signal
from pathlib import Path
from typing import Any, Optional, Union

import click
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn

from .api import GitHubClient
from .config import config
from .exceptions import ClientInputError, ConfigError, GhSyncError
from .output import OutputFormatter
from .session import RepoAction, SessionRequest, Visibility, start_session
from .summarizer import GeminiSummarizer, StaticSummarizer
from .sync.importer import BulkImporter
from .sync.reconciler import RemoteReconciler
from .sync.scanner import DirectoryScanner
from .utils import format_size

logger = logging.getLogger(__name__)


def _make_client(ctx: Any, **kwargs: Any) -> GitHubClient:
    return GitHubClient(
        token=ctx.obj["token"], username=ctx.obj["user"], **kwargs
    )


def _make_summarizer(
    out: OutputFormatter, enabled: bool, timeout: float
) -> Union[GeminiSummarizer, StaticSummarizer]:
    """Use Gemini when a key is configured, otherwise the placeholder."""
    if not enabled:
        return StaticSummarizer()
    try:
        return GeminiSummarizer(timeout=timeout)
    except ConfigError as e:
        out.warning(f"{e} Change summaries will use a placeholder.")
        return StaticSummarizer()


@click.group()
@click.option("--token", "-t", envvar="GITHUB_TOKEN", help="GitHub access token")
@click.option("--user", "-u", envvar="GITHUB_USERNAME", help="GitHub username")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pyghsync")
@click.pass_context
def main(
    ctx: Any,
    token: Optional[str],
    user: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """ghsync - Mirror a local folder to a GitHub repository as it changes."""
    ctx.ensure_object(dict)
    ctx.obj["token"] = token
    ctx.obj["user"] = user
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pyghsync").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option("--token", "-t", prompt="Enter your GitHub access token", hide_input=True)
@click.option("--user", "-u", prompt="Enter your GitHub username")
@click.pass_context
def init(ctx: Any, token: str, user: str) -> None:
    """Store GitHub credentials in ~/.config/pyghsync/config."""
    out: OutputFormatter = ctx.obj["out"]

    async def validate() -> str:
        async with GitHubClient(token=token, username=user) as client:
            info = await client.get_authenticated_user()
        return str(info.get("login", ""))

    out.info("Validating token...")
    try:
        login = asyncio.run(validate())
        if login and login.lower() != user.lower():
            out.warning(f"Token belongs to '{login}', not '{user}'")
        else:
            out.success("✓ Token is valid")
    except GhSyncError as e:
        out.error(f"Token validation failed: {e}")
        if not click.confirm("Save credentials anyway?", default=False):
            out.warning("Configuration cancelled.")
            ctx.exit(1)

    config.save_credentials(token, user)
    out.print_summary(
        "Initialization Complete",
        [
            ("Status", "✓ Configuration saved successfully"),
            ("Config file", str(config.get_config_path())),
        ],
    )


@main.command()
@click.argument("directory", type=click.Path(file_okay=False), required=False)
@click.option("--repo", "-r", help="Repository name")
@click.option(
    "--repo-action",
    type=click.Choice([a.value for a in RepoAction]),
    default=RepoAction.USE_EXISTING.value,
    help="Create the repository or use an existing one (default: use-existing)",
)
@click.option(
    "--visibility",
    type=click.Choice([v.value for v in Visibility]),
    default=Visibility.PRIVATE.value,
    help="Visibility of a created repository (default: private)",
)
@click.option(
    "--import-existing",
    is_flag=True,
    help="Upload files that already exist before watching",
)
@click.option(
    "--interval",
    type=float,
    default=None,
    help="Seconds between sync cycles (default: 10)",
)
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Timeout in seconds for each network call (default: 30)",
)
@click.option("--branch", "-b", default=None, help="Branch to commit to (default: main)")
@click.option("--no-summary", is_flag=True, help="Don't generate AI change summaries")
@click.pass_context
def start(
    ctx: Any,
    directory: Optional[str],
    repo: Optional[str],
    repo_action: str,
    visibility: str,
    import_existing: bool,
    interval: Optional[float],
    timeout: Optional[float],
    branch: Optional[str],
    no_summary: bool,
) -> None:
    """Watch DIRECTORY and mirror its changes to a repository.

    Changes are batched and committed every interval; a summary of each
    batch is appended to log.txt in the repository. Press Ctrl-C to stop;
    pending changes are synced before exiting.
    """
    out: OutputFormatter = ctx.obj["out"]
    request = SessionRequest(
        directory_path=directory,
        repo=repo,
        repo_action=repo_action,
        visibility=visibility,
        import_existing=import_existing,
    )
    interval = interval if interval is not None else config.interval
    timeout = timeout if timeout is not None else config.timeout

    async def run() -> None:
        summarizer = _make_summarizer(out, not no_summary, timeout)
        try:
            await monitor(summarizer)
        finally:
            if isinstance(summarizer, GeminiSummarizer):
                await summarizer.close()

    async def monitor(summarizer: Union[GeminiSummarizer, StaticSummarizer]) -> None:
        async with _make_client(ctx, branch=branch, timeout=timeout) as client:
            session, ack = await start_session(
                request, client, summarizer, interval=interval, timeout=timeout
            )
            if session.import_result is not None:
                result = session.import_result
                out.info(
                    f"Initial import: {result.uploaded} uploaded, "
                    f"{result.unchanged} unchanged, {result.failed} failed"
                )
            out.success(ack)

            stop = asyncio.Event()
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.add_signal_handler(sig, stop.set)
                except NotImplementedError:
                    # Signal handlers are unavailable on Windows
                    pass
            await stop.wait()

            out.info("Stopping, syncing pending changes...")
            await session.stop()

    try:
        asyncio.run(run())
    except ClientInputError as e:
        out.error(str(e))
        ctx.exit(2)
    except GhSyncError as e:
        out.error(f"Could not start monitoring: {e}")
        ctx.exit(1)


@main.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--repo", "-r", required=True, help="Repository name")
@click.option("--branch", "-b", default=None, help="Branch to commit to (default: main)")
@click.option(
    "--force",
    is_flag=True,
    help="Rewrite files even when the remote content is identical",
)
@click.option("--no-progress", is_flag=True, help="Disable progress bars")
@click.pass_context
def push(
    ctx: Any,
    directory: str,
    repo: str,
    branch: Optional[str],
    force: bool,
    no_progress: bool,
) -> None:
    """Upload every eligible file in DIRECTORY to an existing repository."""
    out: OutputFormatter = ctx.obj["out"]
    root = Path(directory).resolve()

    async def run() -> Any:
        async with _make_client(ctx, branch=branch) as client:
            if not await client.repo_exists(repo):
                raise ClientInputError(f"Repository not found: {repo}")
            reconciler = RemoteReconciler(
                client, StaticSummarizer(), repo, root, timeout=config.timeout
            )
            importer = BulkImporter(reconciler, root, skip_unchanged=not force)

            if no_progress or out.quiet or out.json_output:
                return await importer.run()

            with Progress(
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
            ) as progress:
                task = progress.add_task("Uploading...", total=None)

                def on_progress(done: int, total: int) -> None:
                    progress.update(task, completed=done, total=total)

                return await importer.run(progress_callback=on_progress)

    try:
        result = asyncio.run(run())
    except ClientInputError as e:
        out.error(str(e))
        ctx.exit(2)
    except GhSyncError as e:
        out.error(f"Import failed: {e}")
        ctx.exit(1)

    out.print_summary(
        "Import Complete",
        [
            ("Uploaded", str(result.uploaded)),
            ("Unchanged", str(result.unchanged)),
            ("Ignored", str(result.ignored)),
            ("Failed", str(result.failed)),
        ],
    )
    if result.failed:
        ctx.exit(1)


@main.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--show-ignored", is_flag=True, help="List ignored paths as well")
@click.pass_context
def status(ctx: Any, directory: str, show_ignored: bool) -> None:
    """Show which files in DIRECTORY would be mirrored."""
    out: OutputFormatter = ctx.obj["out"]
    scanner = DirectoryScanner()
    files = scanner.scan_local(Path(directory).resolve())

    rows = [[f.relative_path, format_size(f.size)] for f in files]
    if show_ignored:
        rows.extend([path, "ignored"] for path in sorted(scanner.ignored))
    out.output_table(["Path", "Size"], rows, title=f"Files in {directory}")
    out.info(f"{len(files)} file(s) eligible, {len(scanner.ignored)} ignored")


if __name__ == "__main__":
    main()
