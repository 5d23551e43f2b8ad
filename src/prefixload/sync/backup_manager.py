"""Main backup manager orchestrating a sync run."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..auth.cloud_auth import S3Auth
from ..config.settings import CredentialsConfig, PrefixloadConfig
from ..destinations.base import ObjectStore
from ..destinations.s3_bucket import S3Destination
from ..errors import ConfigurationError, PrefixloadError, SyncAborted
from ..utils.file_utils import FileHelper
from ..utils.logging import TimedOperation
from .etag import calculate_s3_etag
from .file_scanner import FileScanner, MatchedFile

# Module logger
logger = logging.getLogger(__name__)


class SyncDecision(str, Enum):
    """What to do with a matched file."""
    SKIP = "skip"
    UPLOAD = "upload"


def decide(synced: bool) -> SyncDecision:
    return SyncDecision.SKIP if synced else SyncDecision.UPLOAD


@dataclass
class RunSummary:
    """Counters for one completed sync run."""
    matched: int = 0
    uploaded: int = 0
    skipped: int = 0
    bytes_transferred: int = 0
    duration: float = 0.0

    @property
    def files_processed(self) -> int:
        return self.uploaded + self.skipped


class BackupManager:
    """Sync the configured local directory to the bucket.

    Files are handled one at a time: ETag, then remote probe, then upload if
    the probe says the object differs. The first fatal error stops the run.
    """

    def __init__(self, config: PrefixloadConfig, destination: ObjectStore,
                 max_workers: Optional[int] = None):
        """Initialize backup manager.

        Args:
            config: Configuration for this run
            destination: Object store to probe and upload to
            max_workers: Threads used to hash the parts of one large file

        Raises:
            ConfigurationError: If the part size or worker count is not positive
        """
        if config.part_size <= 0:
            raise ConfigurationError(f"part_size must be positive, got {config.part_size}")
        if max_workers is not None and max_workers <= 0:
            raise ConfigurationError(f"max_workers must be positive, got {max_workers}")

        self.config = config
        self.destination = destination
        self.max_workers = max_workers

    @classmethod
    def from_config(cls, config: PrefixloadConfig, credentials: CredentialsConfig,
                    max_workers: Optional[int] = None) -> "BackupManager":
        """Create a backup manager talking to the configured S3 endpoint."""
        auth = S3Auth.from_config(config, credentials)
        destination = S3Destination(auth.get_s3_client(), part_size=config.part_size)
        return cls(config, destination, max_workers=max_workers)

    def run(self) -> RunSummary:
        """Run one sync pass over the local directory.

        Returns:
            Summary of the completed run

        Raises:
            SyncAborted: On the first fatal error; files after it are not
                processed and files already uploaded are left as they are
        """
        summary = RunSummary()
        scanner = FileScanner(self.config.local_directory, self.config.directory_struct)
        operation = f"sync of {self.config.local_directory} to s3://{self.config.bucket}"

        try:
            with TimedOperation(logger, operation) as timer:
                for matched in scanner.scan():
                    summary.matched += 1
                    decision = self._sync_file(matched)

                    if decision == SyncDecision.SKIP:
                        summary.skipped += 1
                    else:
                        summary.uploaded += 1
                        summary.bytes_transferred += matched.file.size

        except PrefixloadError as e:
            logger.error(f"Sync aborted after {summary.files_processed} files: {e}")
            raise SyncAborted(str(e), summary.files_processed) from e

        summary.duration = timer.duration

        if scanner.undecodable_names:
            logger.warning(f"{scanner.undecodable_names} files skipped because their names are not valid text")
        logger.info(
            f"Matched {summary.matched} files: {summary.uploaded} uploaded, "
            f"{summary.skipped} skipped, {FileHelper.format_file_size(summary.bytes_transferred)} transferred"
        )
        return summary

    def _sync_file(self, matched: MatchedFile) -> SyncDecision:
        """Hash, probe and, if needed, upload one file."""
        local_file = matched.file
        bucket = self.config.bucket
        key = matched.key

        etag = calculate_s3_etag(local_file.path, self.config.part_size, max_workers=self.max_workers)
        logger.debug(f"ETag for {local_file.name}: {etag}")

        decision = decide(self.destination.is_object_synced(etag, bucket, key))

        if decision == SyncDecision.SKIP:
            logger.info(f"⏭️ Skipping (already backed up): {local_file.name}")
            return decision

        logger.info(
            f"Uploading: {local_file.name} -> s3://{bucket}/{key} "
            f"({FileHelper.format_file_size(local_file.size)})"
        )
        self.destination.upload_file(bucket, key, local_file.path)
        logger.info(f"✅ Uploaded: {key}")
        return decision
