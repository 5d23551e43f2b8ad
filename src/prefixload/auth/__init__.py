"""Authentication for the S3-compatible object store."""

from .cloud_auth import S3Auth

__all__ = ["S3Auth"]
