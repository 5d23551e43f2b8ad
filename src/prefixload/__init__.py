"""
prefixload

Back up local files to an S3-compatible bucket, choosing the remote directory
by file name prefix and uploading only files whose content changed.
"""

__version__ = "0.4.0"
__author__ = "Aleksey Kalsin"
__description__ = "S3 backup by file name prefix"

from .config.settings import PrefixloadConfig
from .sync.backup_manager import BackupManager

__all__ = ["PrefixloadConfig", "BackupManager"]
