"""Configuration management for prefixload."""

from .settings import CredentialsConfig, PrefixloadConfig, UploadRule

__all__ = ["PrefixloadConfig", "UploadRule", "CredentialsConfig"]
