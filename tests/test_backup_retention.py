"""Tests for backup retention, listing, the run lock and pg_dump handling."""

import asyncio
import gzip
import json
import os
from datetime import datetime, timedelta, timezone

import pytest

from app.services.backup_service import (
    BackupAlreadyRunningError, BackupError, BackupService, LOCK_KEY, libpq_url, should_delete_backup,
)

NOW = datetime(2025, 6, 16, 2, 0, tzinfo=timezone.utc)  # a Monday


class TestShouldDeleteBackup:
    """Daily for two weeks, Sundays for eight weeks, month starts for a year."""

    def test_recent_backups_are_kept(self):
        for age in range(0, 15):
            assert not should_delete_backup(NOW - timedelta(days=age), NOW)

    def test_weekday_backup_after_two_weeks(self):
        backup = datetime(2025, 5, 28, 2, 0, tzinfo=timezone.utc)  # Wednesday, 19 days old
        assert should_delete_backup(backup, NOW)

    def test_sunday_backup_kept_for_eight_weeks(self):
        backup = datetime(2025, 5, 4, 2, 0, tzinfo=timezone.utc)  # Sunday, 43 days old
        assert not should_delete_backup(backup, NOW)

    def test_sunday_backup_dropped_after_eight_weeks(self):
        backup = datetime(2025, 3, 30, 2, 0, tzinfo=timezone.utc)  # Sunday, 78 days old
        assert should_delete_backup(backup, NOW)

    def test_first_of_month_kept_for_a_year(self):
        backup = datetime(2024, 9, 1, 2, 0, tzinfo=timezone.utc)
        assert not should_delete_backup(backup, NOW)

    def test_nothing_older_than_a_year(self):
        backup = datetime(2024, 6, 1, 2, 0, tzinfo=timezone.utc)
        assert should_delete_backup(backup, NOW)


class TestLibpqUrl:
    """SQLAlchemy URLs converted for pg_dump."""

    def test_asyncpg_driver_removed(self):
        assert libpq_url("postgresql+asyncpg://u:p@db/fleet") == "postgresql://u:p@db/fleet"

    def test_heroku_style(self):
        assert libpq_url("postgres://u:p@db/fleet") == "postgresql://u:p@db/fleet"


def write_backup(root, backup_type, when, name):
    day_dir = root / backup_type / f"{when:%Y}" / f"{when:%m}" / f"{when:%d}"
    day_dir.mkdir(parents=True, exist_ok=True)
    archive = day_dir / name
    archive.write_bytes(b"data")
    manifest = {
        "timestamp": when.isoformat(),
        "type": backup_type,
        "filename": name,
        "size": 4,
        "checksum": "x",
    }
    (day_dir / f"{name}.manifest.json").write_text(json.dumps(manifest))
    return archive


class TestBackupFiles:
    """Listing and cleanup on disk."""

    def test_list_newest_first(self, tmp_path):
        write_backup(tmp_path, "database", NOW - timedelta(days=2), "old.sql.gz")
        write_backup(tmp_path, "files", NOW - timedelta(days=1), "new.zip")

        service = BackupService(backup_dir=str(tmp_path), upload_dir=str(tmp_path / "uploads"))
        assert [m["filename"] for m in service.list_backups()] == ["new.zip", "old.sql.gz"]
        assert [m["filename"] for m in service.list_backups("database")] == ["old.sql.gz"]

    def test_unknown_type(self, tmp_path):
        with pytest.raises(ValueError):
            BackupService(backup_dir=str(tmp_path)).list_backups("logs")

    def test_cleanup_applies_retention(self, tmp_path):
        kept = write_backup(tmp_path, "database", NOW - timedelta(days=3), "recent.sql.gz")
        dropped = write_backup(tmp_path, "database", datetime(2025, 5, 28, 2, 0, tzinfo=timezone.utc), "wed.sql.gz")

        deleted = BackupService(backup_dir=str(tmp_path)).cleanup_old_backups(NOW)

        assert deleted == ["wed.sql.gz"]
        assert kept.exists()
        assert not dropped.exists()
        # Emptied day directory is removed as well
        assert not dropped.parent.exists()

    async def test_files_backup(self, tmp_path):
        uploads = tmp_path / "uploads"
        (uploads / "contracts").mkdir(parents=True)
        (uploads / "contracts" / "c1.pdf").write_bytes(b"%PDF")
        (uploads / "damage.jpg").write_bytes(b"jpg")

        service = BackupService(backup_dir=str(tmp_path / "backups"), upload_dir=str(uploads))
        manifest = await service.create_files_backup()

        assert manifest["type"] == "files"
        assert manifest["file_count"] == 2
        assert len(manifest["checksum"]) == 64
        assert [m["filename"] for m in service.list_backups("files")] == [manifest["filename"]]


class TestRunBackup:
    """Only one backup at a time; status is tracked in Redis."""

    async def test_refused_while_locked(self, tmp_path, fake_redis):
        await fake_redis.set(LOCK_KEY, "1")
        service = BackupService(redis=fake_redis, backup_dir=str(tmp_path))

        with pytest.raises(BackupAlreadyRunningError):
            await service.run_backup()
        assert (await service.get_status())["is_running"] is True

    async def test_success_records_status_and_releases_lock(self, tmp_path, fake_redis, monkeypatch):
        service = BackupService(redis=fake_redis, backup_dir=str(tmp_path), upload_dir=str(tmp_path / "uploads"))

        async def fake_database_backup():
            return {"filename": "db.sql.gz"}

        monkeypatch.setattr(service, "create_database_backup", fake_database_backup)
        result = await service.run_backup()

        assert result["database"]["filename"] == "db.sql.gz"
        status = await service.get_status()
        assert status["is_running"] is False
        assert status["last_success"] is not None
        assert await fake_redis.get(LOCK_KEY) is None

    async def test_failure_records_error(self, tmp_path, fake_redis, monkeypatch):
        service = BackupService(redis=fake_redis, backup_dir=str(tmp_path))

        async def failing_backup():
            raise BackupError("pg_dump is not installed")

        monkeypatch.setattr(service, "create_database_backup", failing_backup)
        with pytest.raises(BackupError):
            await service.run_backup()

        status = await service.get_status()
        assert "pg_dump is not installed" in status["last_error"]
        assert status["is_running"] is False


@pytest.fixture
def fake_pg_dump(tmp_path, monkeypatch):
    """Put a shell script named pg_dump first on PATH"""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()

    def install(body):
        script = bin_dir / "pg_dump"
        script.write_text("#!/bin/sh\n" + body)
        script.chmod(0o755)

    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    return install


class TestDatabaseBackup:
    """Running pg_dump and compressing its output."""

    async def test_noisy_stderr_does_not_stall(self, tmp_path, fake_pg_dump):
        # Far more warnings than a pipe buffer holds, before any stdout
        fake_pg_dump("head -c 300000 /dev/zero | tr '\\0' 'w' >&2\necho 'CREATE TABLE vehicles ();'\n")
        service = BackupService(backup_dir=str(tmp_path / "backups"), database_url="postgresql://u:p@db/fleet")

        manifest = await asyncio.wait_for(service.create_database_backup(), timeout=30)

        archive = next((tmp_path / "backups" / "database").rglob(manifest["filename"]))
        assert gzip.decompress(archive.read_bytes()) == b"CREATE TABLE vehicles ();\n"

    async def test_failed_dump_reports_stderr(self, tmp_path, fake_pg_dump):
        fake_pg_dump("echo 'connection refused' >&2\nexit 1\n")
        service = BackupService(backup_dir=str(tmp_path / "backups"), database_url="postgresql://u:p@db/fleet")

        with pytest.raises(BackupError, match="connection refused"):
            await service.create_database_backup()
        assert not list((tmp_path / "backups" / "database").rglob("*.sql.gz"))

    async def test_write_error_kills_pg_dump(self, tmp_path, fake_pg_dump, monkeypatch):
        fake_pg_dump("echo 'CREATE TABLE vehicles ();'\nexec sleep 30\n")
        service = BackupService(backup_dir=str(tmp_path / "backups"), database_url="postgresql://u:p@db/fleet")

        def disk_full(*args, **kwargs):
            raise OSError("No space left on device")

        monkeypatch.setattr(gzip, "open", disk_full)
        with pytest.raises(OSError):
            await asyncio.wait_for(service.create_database_backup(), timeout=10)
