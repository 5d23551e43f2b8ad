"""Shared fixtures for prefixload tests."""

import os
import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from prefixload.config.settings import PrefixloadConfig, UploadRule

MB = 1024 * 1024


@pytest.fixture
def backup_dir(tmp_path) -> Path:
    """Empty local directory to back up."""
    directory = tmp_path / "backups"
    directory.mkdir()
    return directory


@pytest.fixture
def make_config(backup_dir):
    """Build a config pointing at ``backup_dir``."""
    def _make(rules=None, part_size=5 * MB, **overrides):
        if rules is None:
            rules = [("db_", "databases"), ("logs_", "logs")]
        data = {
            "endpoint": "http://localhost:9000",
            "bucket": "backups",
            "part_size": part_size,
            "local_directory_path": str(backup_dir),
            "directory_struct": [UploadRule(prefix_file=p, cloud_dir=d) for p, d in rules],
        }
        data.update(overrides)
        return PrefixloadConfig(**data)
    return _make
