"""Sync engine for backup operations."""

from .backup_manager import BackupManager, RunSummary, SyncDecision
from .etag import calculate_s3_etag
from .file_scanner import FileScanner, LocalFile, MatchedFile, match_rule

__all__ = [
    "BackupManager",
    "RunSummary",
    "SyncDecision",
    "calculate_s3_etag",
    "FileScanner",
    "LocalFile",
    "MatchedFile",
    "match_rule",
]
