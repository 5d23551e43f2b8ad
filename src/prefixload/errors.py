"""Exception hierarchy for prefixload."""

from enum import Enum
from typing import Optional


class PrefixloadError(Exception):
    """Base class for all prefixload errors."""


class ConfigurationError(PrefixloadError):
    """Invalid or missing configuration."""


class LocalIOError(PrefixloadError):
    """A local file could not be listed or read."""

    def __init__(self, path, message: str, offset: Optional[int] = None,
                 length: Optional[int] = None):
        self.path = str(path)
        self.offset = offset
        self.length = length
        if offset is not None and length is not None:
            location = f"{self.path} [bytes {offset}-{offset + length - 1}]"
        else:
            location = self.path
        super().__init__(f"I/O error on {location}: {message}")


class RemoteProtocolError(PrefixloadError):
    """The object store returned an unexpected response or could not be reached."""

    def __init__(self, operation: str, bucket: str, message: str, key: Optional[str] = None,
                 status_code: Optional[int] = None, error_code: Optional[str] = None):
        self.operation = operation
        self.bucket = bucket
        self.key = key
        self.status_code = status_code
        self.error_code = error_code
        target = f"s3://{bucket}/{key}" if key else f"s3://{bucket}"
        detail = f" (HTTP {status_code})" if status_code else ""
        super().__init__(f"{operation} failed for {target}{detail}: {message}")


class UploadFailureKind(str, Enum):
    """Where an upload failed."""
    LOCAL = "local"
    REMOTE = "remote"


class UploadError(PrefixloadError):
    """Upload of a local file failed, either reading it or sending it."""

    def __init__(self, kind: UploadFailureKind, bucket: str, key: str, path, message: str):
        self.kind = kind
        self.bucket = bucket
        self.key = key
        self.path = str(path)
        if kind == UploadFailureKind.LOCAL:
            prefix = f"Cannot read {self.path}"
        else:
            prefix = f"Upload to s3://{bucket}/{key} failed"
        super().__init__(f"{prefix}: {message}")


class SyncAborted(PrefixloadError):
    """A sync run stopped on a fatal error."""

    def __init__(self, message: str, files_processed: int):
        self.files_processed = files_processed
        super().__init__(f"{message} (files processed before failure: {files_processed})")
