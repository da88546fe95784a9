#!/usr/bin/env python3
"""
Nightly backup: database dump, uploaded files, then retention cleanup
Run with: python run_backup.py  (e.g. from cron at 02:00)
"""
import asyncio
import sys
from app import database
from app.services.backup_service import BackupService, BackupError

async def main() -> int:
    try:
        await database.init_redis()
    except Exception as e:
        print(f"⚠️  Redis unavailable, running without the shared lock: {e}")

    service = BackupService(redis=database.redis_client)
    try:
        print("=" * 60)
        print("BACKUP")
        print("=" * 60)

        result = await service.run_backup()
        for kind, manifest in result.items():
            print(f"✓ {kind}: {manifest['filename']} ({manifest['size']} bytes)")

        deleted = service.cleanup_old_backups()
        print(f"✓ Cleanup removed {len(deleted)} old backup(s)")
        return 0
    except BackupError as e:
        print(f"❌ Backup failed: {e}")
        return 1
    finally:
        await database.close_redis()

if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
