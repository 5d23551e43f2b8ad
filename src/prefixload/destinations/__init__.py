"""Remote object store destinations."""

from .base import BucketAccess, ObjectStore, RemoteObjectState, RemoteObjectStatus
from .s3_bucket import S3Destination

__all__ = ["BucketAccess", "ObjectStore", "RemoteObjectState", "RemoteObjectStatus", "S3Destination"]
