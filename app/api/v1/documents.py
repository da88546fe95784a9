from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from app.database import get_db
from app.dependencies import get_current_user
from app.schemas.other import DocumentCreate, DocumentUpdate, DocumentResponse
from app.services.record_service import DocumentService
from app.api.v1.websocket import broadcast_data_update
from app.models import User

router = APIRouter(prefix="/documents", tags=["Documents"])

def _payload(document) -> dict:
    return DocumentResponse.model_validate(document).model_dump(mode="json")

@router.get("", response_model=List[DocumentResponse])
async def list_documents(
    vehicle_id: Optional[int] = None,
    reservation_id: Optional[int] = None,
    document_type: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await DocumentService(db).list(vehicle_id, reservation_id, document_type)

@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await DocumentService(db).get(document_id)

@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def create_document(
    document_data: DocumentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Register an uploaded file against a vehicle and optionally a reservation"""
    document = await DocumentService(db).create(document_data, created_by=current_user.username)
    await broadcast_data_update("document", "created", _payload(document))
    return document

@router.patch("/{document_id}", response_model=DocumentResponse)
async def update_document(
    document_id: int,
    document_data: DocumentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    document = await DocumentService(db).update(document_id, document_data)
    await broadcast_data_update("document", "updated", _payload(document))
    return document

@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    await DocumentService(db).delete(document_id)
    await broadcast_data_update("document", "deleted", {"id": document_id})
