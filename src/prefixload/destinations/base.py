"""Base object store interface and remote state types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from ..utils.logging import get_logger


class BucketAccess(str, Enum):
    """Outcome of a bucket reachability probe."""
    ACCESSIBLE = "accessible"
    # Bucket exists but the credentials have no rights on it (401/403)
    FORBIDDEN = "forbidden"


class RemoteObjectStatus(str, Enum):
    NOT_FOUND = "not_found"
    FOUND = "found"


def normalize_etag(etag: Optional[str]) -> Optional[str]:
    """Strip the surrounding quotes an ETag header value carries."""
    if etag is None:
        return None
    return etag.strip().strip('"')


@dataclass(frozen=True)
class RemoteObjectState:
    """State of one object in the store, as returned by a metadata probe."""
    status: RemoteObjectStatus
    etag: Optional[str] = None

    @classmethod
    def not_found(cls) -> "RemoteObjectState":
        return cls(RemoteObjectStatus.NOT_FOUND)

    @classmethod
    def found(cls, etag: Optional[str]) -> "RemoteObjectState":
        return cls(RemoteObjectStatus.FOUND, normalize_etag(etag) or None)

    @property
    def exists(self) -> bool:
        return self.status == RemoteObjectStatus.FOUND


class ObjectStore(ABC):
    """Abstract base class for the remote store a sync run talks to.

    Implementations do the network I/O; the sync decision built on top of the
    metadata probe lives here so every store compares ETags the same way.
    """

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    @abstractmethod
    def check_bucket_access(self, bucket: str) -> BucketAccess:
        """Probe bucket existence and permissions.

        Returns:
            ACCESSIBLE, or FORBIDDEN when the bucket exists but access is denied

        Raises:
            RemoteProtocolError: On any other failure (missing bucket, network, bad region)
        """

    @abstractmethod
    def get_remote_state(self, bucket: str, key: str) -> RemoteObjectState:
        """Fetch object metadata.

        Returns:
            NOT_FOUND for a missing object, FOUND with the unquoted ETag otherwise

        Raises:
            RemoteProtocolError: On any other failure
        """

    @abstractmethod
    def upload_file(self, bucket: str, key: str, local_path: Union[str, Path]) -> None:
        """Stream a local file to ``bucket/key``.

        Raises:
            UploadError: With kind LOCAL if the file cannot be read,
                REMOTE if the transfer fails
        """

    def is_object_synced(self, local_etag: str, bucket: str, key: str) -> bool:
        """Check whether the stored object has the same content as the local file.

        A missing object, or one without an ETag, is not synced.

        Raises:
            RemoteProtocolError: If the probe fails for any other reason
        """
        state = self.get_remote_state(bucket, key)

        if not state.exists:
            self.logger.debug(f"Object not found: s3://{bucket}/{key}")
            return False

        if state.etag is None:
            self.logger.debug(f"Object has no ETag: s3://{bucket}/{key}")
            return False

        synced = state.etag == local_etag
        if not synced:
            self.logger.debug(f"ETag changed for s3://{bucket}/{key}")
            self.logger.debug(f"  Remote: {state.etag}")
            self.logger.debug(f"  Local: {local_etag}")
        return synced
