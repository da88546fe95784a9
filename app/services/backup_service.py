import asyncio
import gzip
import hashlib
import json
import logging
import os
import shutil
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional
from app.config import settings

logger = logging.getLogger(__name__)

STATUS_KEY = "backup:status"
LOCK_KEY = "backup:lock"
LOCK_TTL_SECONDS = 6 * 60 * 60
BACKUP_TYPES = ("database", "files")

class BackupError(RuntimeError):
    pass

class BackupAlreadyRunningError(BackupError):
    pass

def should_delete_backup(backup_time: datetime, now: datetime) -> bool:
    """
    Retention policy: every backup for 14 days, Sunday backups for 8 weeks,
    first-of-month backups for a year, nothing older.
    """
    days_old = (now - backup_time).days
    if days_old > 365:
        return True
    if days_old > 56:
        return backup_time.day != 1
    if days_old > 14:
        return backup_time.weekday() != 6
    return False

def libpq_url(url: str) -> str:
    """pg_dump understands plain postgresql:// URLs only"""
    for prefix in ("postgresql+asyncpg://", "postgres://"):
        if url.startswith(prefix):
            return "postgresql://" + url[len(prefix):]
    return url

def file_checksum(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()

class BackupService:
    def __init__(
        self,
        redis=None,
        backup_dir: Optional[str] = None,
        upload_dir: Optional[str] = None,
        database_url: Optional[str] = None
    ):
        self.redis = redis
        self.backup_dir = Path(backup_dir or settings.BACKUP_DIR)
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)
        self.database_url = database_url or settings.DATABASE_URL

    # Status
    async def get_status(self) -> Dict:
        status = {"is_running": False, "last_run": None, "last_success": None, "last_error": None}
        if self.redis is not None:
            raw = await self.redis.get(STATUS_KEY)
            if raw:
                status.update(json.loads(raw))
            status["is_running"] = bool(await self.redis.get(LOCK_KEY))
        return status

    async def _update_status(self, **changes):
        if self.redis is None:
            return
        status = await self.get_status()
        status.update(changes)
        status.pop("is_running", None)
        await self.redis.set(STATUS_KEY, json.dumps(status))

    # Layout
    def _day_dir(self, backup_type: str, when: datetime) -> Path:
        path = self.backup_dir / backup_type / f"{when:%Y}" / f"{when:%m}" / f"{when:%d}"
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _write_manifest(self, target: Path, backup_type: str, when: datetime, **extra) -> Dict:
        manifest = {
            "timestamp": when.isoformat(),
            "type": backup_type,
            "filename": target.name,
            "size": target.stat().st_size,
            "checksum": file_checksum(target),
            **extra,
        }
        manifest_path = target.with_name(target.name + ".manifest.json")
        manifest_path.write_text(json.dumps(manifest, indent=2))
        return manifest

    # Backups
    async def create_database_backup(self) -> Dict:
        """pg_dump the database into a gzip file with a manifest next to it"""
        if shutil.which("pg_dump") is None:
            raise BackupError("pg_dump is not installed")

        now = datetime.now(timezone.utc)
        target = self._day_dir("database", now) / f"db-backup-{now:%Y-%m-%dT%H-%M-%S}.sql.gz"
        logger.info("Creating database backup...")

        process = await asyncio.create_subprocess_exec(
            "pg_dump", libpq_url(self.database_url),
            "--clean", "--if-exists", "--no-owner", "--no-privileges",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

        async def copy_stdout():
            with gzip.open(target, "wb", compresslevel=9) as out:
                while True:
                    chunk = await process.stdout.read(1024 * 1024)
                    if not chunk:
                        break
                    out.write(chunk)

        # Drain both pipes together
        try:
            _, stderr = await asyncio.gather(copy_stdout(), process.stderr.read())
            code = await process.wait()
        except BaseException:
            if process.returncode is None:
                process.kill()
                await process.wait()
            target.unlink(missing_ok=True)
            raise

        if code != 0:
            target.unlink(missing_ok=True)
            raise BackupError(f"pg_dump failed with code {code}: {stderr.decode(errors='ignore').strip()}")

        manifest = self._write_manifest(target, "database", now)
        logger.info(f"Database backup created: {target.name} ({manifest['size']} bytes)")
        return manifest

    async def create_files_backup(self) -> Dict:
        """Zip everything under UPLOAD_DIR"""
        now = datetime.now(timezone.utc)
        target = self._day_dir("files", now) / f"files-backup-{now:%Y-%m-%dT%H-%M-%S}.zip"
        logger.info("Creating files backup...")

        file_count = 0
        with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            if self.upload_dir.exists():
                for path in sorted(self.upload_dir.rglob("*")):
                    if path.is_file():
                        archive.write(path, path.relative_to(self.upload_dir).as_posix())
                        file_count += 1

        manifest = self._write_manifest(target, "files", now, file_count=file_count)
        logger.info(f"Files backup created: {target.name} ({file_count} files, {manifest['size']} bytes)")
        return manifest

    async def run_backup(self) -> Dict[str, Dict]:
        """Database and files backup in one go; only one run at a time"""
        if self.redis is not None:
            acquired = await self.redis.set(LOCK_KEY, "1", nx=True, ex=LOCK_TTL_SECONDS)
            if not acquired:
                raise BackupAlreadyRunningError("Backup is already running")

        started = datetime.now(timezone.utc).isoformat()
        await self._update_status(last_run=started)
        logger.info("Starting backup process...")

        try:
            database = await self.create_database_backup()
            files = await self.create_files_backup()
        except Exception as e:
            failed = datetime.now(timezone.utc).isoformat()
            logger.error(f"Backup failed: {e}", exc_info=True)
            await self._update_status(last_error=f"{failed}: {e}")
            raise
        finally:
            if self.redis is not None:
                await self.redis.delete(LOCK_KEY)

        await self._update_status(last_success=datetime.now(timezone.utc).isoformat())
        logger.info("Backup completed successfully")
        return {"database": database, "files": files}

    def _manifest_paths(self, backup_type: Optional[str] = None) -> List[Path]:
        types = [backup_type] if backup_type else list(BACKUP_TYPES)
        paths = []
        for kind in types:
            root = self.backup_dir / kind
            if root.exists():
                paths.extend(root.rglob("*.manifest.json"))
        return paths

    def list_backups(self, backup_type: Optional[str] = None) -> List[Dict]:
        """Backup manifests, newest first"""
        if backup_type and backup_type not in BACKUP_TYPES:
            raise ValueError(f"Unknown backup type: {backup_type}")

        manifests = []
        for path in self._manifest_paths(backup_type):
            try:
                manifest = json.loads(path.read_text())
            except (OSError, ValueError) as e:
                logger.error(f"Error reading manifest {path}: {e}")
                continue
            manifest["_path"] = str(path)
            manifests.append(manifest)

        manifests.sort(key=lambda m: m["timestamp"], reverse=True)
        return manifests

    def cleanup_old_backups(self, now: Optional[datetime] = None) -> List[str]:
        """Delete backups outside the retention policy; returns deleted filenames"""
        now = now or datetime.now(timezone.utc)
        deleted = []

        for manifest in self.list_backups():
            backup_time = datetime.fromisoformat(manifest["timestamp"])
            if backup_time.tzinfo is None:
                backup_time = backup_time.replace(tzinfo=timezone.utc)
            if not should_delete_backup(backup_time, now):
                continue

            manifest_path = Path(manifest["_path"])
            archive_path = manifest_path.with_name(manifest["filename"])
            archive_path.unlink(missing_ok=True)
            manifest_path.unlink(missing_ok=True)
            deleted.append(manifest["filename"])
            logger.info(f"Deleted old backup: {manifest['filename']}")

            # Drop the emptied day directory
            day_dir = manifest_path.parent
            if day_dir.exists() and not any(day_dir.iterdir()):
                os.rmdir(day_dir)

        logger.info(f"Cleanup completed. Deleted {len(deleted)} old backups.")
        return deleted
