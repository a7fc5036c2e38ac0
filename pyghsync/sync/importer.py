"""One-shot initial import of a monitored directory."""

import logging
from pathlib import Path
from typing import Callable, Optional

from ..exceptions import RemoteConflictError, RemoteError
from ..models import ImportResult
from ..utils import INITIAL_IMPORT_MESSAGE
from .reconciler import RemoteReconciler
from .scanner import DirectoryScanner

logger = logging.getLogger(__name__)


class BulkImporter:
    """Uploads every eligible file under the monitored root.

    The walk is recursive and applies the same ignore rules as the watch.
    No summaries are generated and nothing is appended to the change log.
    """

    def __init__(
        self,
        reconciler: RemoteReconciler,
        root: Path,
        skip_unchanged: bool = True,
    ):
        """Initialize the importer.

        Args:
            reconciler: Reconciler providing the upsert step
            root: Monitored root directory
            skip_unchanged: Don't rewrite files whose remote content already matches
        """
        self.reconciler = reconciler
        self.root = root
        self.skip_unchanged = skip_unchanged

    async def run(
        self,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> ImportResult:
        """Import all eligible files.

        Args:
            progress_callback: Optional progress callback
                function(files_done, files_total)

        Returns:
            ImportResult with import statistics
        """
        scanner = DirectoryScanner()
        local_files = scanner.scan_local(self.root)
        result = ImportResult(ignored=len(scanner.ignored))
        total = len(local_files)
        logger.info(f"Importing {total} file(s) from {self.root}")

        for done, local_file in enumerate(local_files, start=1):
            path = local_file.relative_path
            try:
                written = await self.reconciler.upsert(
                    path,
                    local_file.read_text(),
                    INITIAL_IMPORT_MESSAGE,
                    skip_unchanged=self.skip_unchanged,
                )
            except RemoteConflictError as e:
                result.failed += 1
                logger.warning(f"Conflict importing {path}: {e}")
            except (RemoteError, OSError) as e:
                result.failed += 1
                logger.warning(f"Failed to import {path}: {e}")
            else:
                if written:
                    result.uploaded += 1
                else:
                    result.unchanged += 1

            if progress_callback:
                progress_callback(done, total)

        logger.info(
            f"Import complete: {result.uploaded} uploaded, "
            f"{result.unchanged} unchanged, {result.failed} failed"
        )
        return result
