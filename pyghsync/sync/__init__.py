"""Sync engine for pyghsync - watch, batch and mirror local changes."""

from .ignore import (
    IgnoreRuleSet,
    is_always_skipped,
    is_ignored,
    is_path_ignored,
    load_ignore_rules,
)
from .importer import BulkImporter
from .ledger import ChangeLedger
from .reconciler import RemoteReconciler
from .scanner import DirectoryScanner, LocalFile
from .scheduler import SyncScheduler
from .watcher import WatchSource, consume_events, fold_event

__all__ = [
    "BulkImporter",
    "ChangeLedger",
    "DirectoryScanner",
    "IgnoreRuleSet",
    "LocalFile",
    "RemoteReconciler",
    "SyncScheduler",
    "WatchSource",
    "consume_events",
    "fold_event",
    "is_always_skipped",
    "is_ignored",
    "is_path_ignored",
    "load_ignore_rules",
]
