"""Cleanup run orchestration."""

from .lock import RunLock
from .orchestrator import CleanupOrchestrator
from .report import print_judgments, print_run_report
from .service import DuplicateCleanupService

__all__ = [
    "CleanupOrchestrator",
    "DuplicateCleanupService",
    "RunLock",
    "print_judgments",
    "print_run_report",
]
