"""Tests for the sync run orchestration."""

import hashlib
import os

import pytest

from prefixload.destinations.base import BucketAccess, ObjectStore, RemoteObjectState
from prefixload.errors import (
    ConfigurationError,
    LocalIOError,
    RemoteProtocolError,
    SyncAborted,
    UploadError,
    UploadFailureKind,
)
from prefixload.sync import backup_manager
from prefixload.sync.backup_manager import BackupManager, SyncDecision, decide
from prefixload.sync.etag import calculate_s3_etag


class FakeObjectStore(ObjectStore):
    """In-memory store recording every call."""

    def __init__(self, objects=None):
        super().__init__()
        # key -> ETag as the store would report it (quoted), None for no ETag header
        self.objects = dict(objects or {})
        self.calls = []
        self.fail_probe_on = set()
        self.fail_upload_on = set()

    def check_bucket_access(self, bucket):
        self.calls.append(("head_bucket", bucket))
        return BucketAccess.ACCESSIBLE

    def get_remote_state(self, bucket, key):
        self.calls.append(("head_object", key))
        if key in self.fail_probe_on:
            raise RemoteProtocolError("HeadObject", bucket, "InternalError", key=key, status_code=500)
        if key not in self.objects:
            return RemoteObjectState.not_found()
        return RemoteObjectState.found(self.objects[key])

    def upload_file(self, bucket, key, local_path):
        self.calls.append(("put_object", key))
        if key in self.fail_upload_on:
            raise UploadError(UploadFailureKind.REMOTE, bucket, key, local_path, "503 Slow Down")
        with open(local_path, "rb") as f:
            self.objects[key] = f'"{hashlib.md5(f.read()).hexdigest()}"'

    def keys_called(self, operation):
        return [key for op, key in self.calls if op == operation]


def md5_quoted(content: bytes) -> str:
    return f'"{hashlib.md5(content).hexdigest()}"'


def test_decide():
    assert decide(True) == SyncDecision.SKIP
    assert decide(False) == SyncDecision.UPLOAD


class TestRun:

    def test_new_files_are_uploaded(self, backup_dir, make_config):
        (backup_dir / "db_2024.sql").write_bytes(b"create table t;")
        (backup_dir / "logs_app.txt").write_bytes(b"started")
        store = FakeObjectStore()

        summary = BackupManager(make_config(), store).run()

        assert (summary.matched, summary.uploaded, summary.skipped) == (2, 2, 0)
        assert summary.bytes_transferred == len(b"create table t;") + len(b"started")
        assert store.keys_called("put_object") == ["databases/db_2024.sql", "logs/logs_app.txt"]
        assert summary.duration >= 0

    def test_unchanged_file_is_skipped(self, backup_dir, make_config):
        content = b"create table t;"
        (backup_dir / "db_2024.sql").write_bytes(content)
        store = FakeObjectStore({"databases/db_2024.sql": md5_quoted(content)})

        summary = BackupManager(make_config(), store).run()

        assert (summary.matched, summary.uploaded, summary.skipped) == (1, 0, 1)
        assert store.keys_called("put_object") == []

    def test_changed_file_is_uploaded(self, backup_dir, make_config):
        (backup_dir / "db_2024.sql").write_bytes(b"create table t2;")
        store = FakeObjectStore({"databases/db_2024.sql": md5_quoted(b"create table t;")})

        summary = BackupManager(make_config(), store).run()

        assert summary.uploaded == 1
        assert store.objects["databases/db_2024.sql"] == md5_quoted(b"create table t2;")

    def test_object_without_etag_is_uploaded(self, backup_dir, make_config):
        (backup_dir / "db_2024.sql").write_bytes(b"data")
        store = FakeObjectStore({"databases/db_2024.sql": None})

        summary = BackupManager(make_config(), store).run()

        assert summary.uploaded == 1

    def test_second_run_skips_everything(self, backup_dir, make_config):
        (backup_dir / "db_a.sql").write_bytes(b"a")
        (backup_dir / "db_b.sql").write_bytes(b"b")
        store = FakeObjectStore()
        config = make_config()

        BackupManager(config, store).run()
        summary = BackupManager(config, store).run()

        assert (summary.uploaded, summary.skipped) == (0, 2)

    def test_multipart_etag_is_compared(self, backup_dir, make_config):
        part_size = 5 * 1024 * 1024
        content = bytes(range(256)) * (2 * part_size // 256) + b"tail"
        path = backup_dir / "db_big.bin"
        path.write_bytes(content)
        remote_etag = calculate_s3_etag(path, part_size)
        store = FakeObjectStore({"databases/db_big.bin": f'"{remote_etag}"'})

        summary = BackupManager(make_config(part_size=part_size), store, max_workers=3).run()

        assert remote_etag.endswith("-3")
        assert summary.skipped == 1


class TestMatching:

    def test_unmatched_file_is_never_hashed_or_probed(self, backup_dir, make_config, monkeypatch):
        (backup_dir / "notes.txt").write_bytes(b"not a backup")
        (backup_dir / "db_1.sql").write_bytes(b"backup")
        hashed = []

        def recording_etag(path, part_size, max_workers=None):
            hashed.append(os.path.basename(path))
            return calculate_s3_etag(path, part_size, max_workers=max_workers)

        monkeypatch.setattr(backup_manager, "calculate_s3_etag", recording_etag)
        store = FakeObjectStore()

        summary = BackupManager(make_config(), store).run()

        assert hashed == ["db_1.sql"]
        assert [key for _, key in store.calls] == ["databases/db_1.sql", "databases/db_1.sql"]
        assert summary.matched == 1

    def test_only_unmatched_files_make_no_calls(self, backup_dir, make_config):
        (backup_dir / "notes.txt").write_bytes(b"x")
        store = FakeObjectStore()

        summary = BackupManager(make_config(), store).run()

        assert store.calls == []
        assert (summary.matched, summary.uploaded, summary.skipped) == (0, 0, 0)

    def test_first_matching_rule_wins(self, backup_dir, make_config):
        (backup_dir / "db_prod_1.sql").write_bytes(b"x")
        rules = [("db_", "all-databases"), ("db_prod_", "production")]
        store = FakeObjectStore()

        BackupManager(make_config(rules=rules), store).run()

        assert store.keys_called("put_object") == ["all-databases/db_prod_1.sql"]

    def test_subdirectories_are_ignored(self, backup_dir, make_config):
        (backup_dir / "db_dir").mkdir()
        (backup_dir / "db_dir" / "db_inner.sql").write_bytes(b"x")
        store = FakeObjectStore()

        summary = BackupManager(make_config(), store).run()

        assert summary.matched == 0
        assert store.calls == []


class TestFatalErrors:

    def test_upload_failure_stops_the_run(self, backup_dir, make_config):
        for name in ("db_1.sql", "db_2.sql", "db_3.sql"):
            (backup_dir / name).write_bytes(name.encode())
        store = FakeObjectStore()
        store.fail_upload_on.add("databases/db_2.sql")

        with pytest.raises(SyncAborted) as exc_info:
            BackupManager(make_config(), store).run()

        assert exc_info.value.files_processed == 1
        assert isinstance(exc_info.value.__cause__, UploadError)
        # Nothing after the failing file is touched, nothing before it is rolled back
        assert "databases/db_3.sql" not in store.keys_called("head_object")
        assert "databases/db_1.sql" in store.objects

    def test_probe_failure_stops_the_run(self, backup_dir, make_config):
        (backup_dir / "db_1.sql").write_bytes(b"1")
        (backup_dir / "db_2.sql").write_bytes(b"2")
        store = FakeObjectStore({"databases/db_1.sql": md5_quoted(b"1")})
        store.fail_probe_on.add("databases/db_2.sql")

        with pytest.raises(SyncAborted) as exc_info:
            BackupManager(make_config(), store).run()

        assert exc_info.value.files_processed == 1
        assert isinstance(exc_info.value.__cause__, RemoteProtocolError)

    def test_fingerprint_failure_stops_the_run(self, backup_dir, make_config, monkeypatch):
        (backup_dir / "db_1.sql").write_bytes(b"1")

        def failing_etag(path, part_size, max_workers=None):
            raise LocalIOError(path, "Permission denied")

        monkeypatch.setattr(backup_manager, "calculate_s3_etag", failing_etag)
        store = FakeObjectStore()

        with pytest.raises(SyncAborted) as exc_info:
            BackupManager(make_config(), store).run()

        assert exc_info.value.files_processed == 0
        assert store.calls == []

    def test_missing_directory_aborts(self, tmp_path, make_config):
        config = make_config(local_directory_path=str(tmp_path / "nope"))

        with pytest.raises(SyncAborted) as exc_info:
            BackupManager(config, FakeObjectStore()).run()

        assert isinstance(exc_info.value.__cause__, LocalIOError)

    def test_invalid_worker_count_fails_before_io(self, make_config):
        with pytest.raises(ConfigurationError):
            BackupManager(make_config(), FakeObjectStore(), max_workers=0)
