from fastapi import APIRouter, Depends, HTTPException, status
from typing import List, Optional
from app.database import get_redis
from app.dependencies import get_current_admin
from app.schemas.other import BackupManifest, BackupStatus
from app.services.backup_service import BackupService, BackupError, BackupAlreadyRunningError, BACKUP_TYPES
from app.models import User
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/backups", tags=["Backups"])

def get_backup_service(redis_client=Depends(get_redis)) -> BackupService:
    # Without Redis backups still run, but status and the run lock are not shared
    return BackupService(redis=redis_client)

@router.get("/status", response_model=BackupStatus)
async def backup_status(
    service: BackupService = Depends(get_backup_service),
    current_user: User = Depends(get_current_admin)
):
    return await service.get_status()

@router.get("", response_model=List[BackupManifest])
async def list_backups(
    backup_type: Optional[str] = None,
    service: BackupService = Depends(get_backup_service),
    current_user: User = Depends(get_current_admin)
):
    if backup_type and backup_type not in BACKUP_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Backup type must be one of: {', '.join(BACKUP_TYPES)}"
        )
    return service.list_backups(backup_type)

@router.post("/run")
async def run_backup(
    service: BackupService = Depends(get_backup_service),
    current_user: User = Depends(get_current_admin)
):
    """Create a database and files backup now"""
    try:
        result = await service.run_backup()
    except BackupAlreadyRunningError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except BackupError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    logger.info(f"Manual backup triggered by {current_user.username}")
    return result

@router.post("/cleanup")
async def cleanup_backups(
    service: BackupService = Depends(get_backup_service),
    current_user: User = Depends(get_current_admin)
):
    """Apply the retention policy and delete expired backups"""
    deleted = service.cleanup_old_backups()
    return {"deleted": deleted, "count": len(deleted)}
