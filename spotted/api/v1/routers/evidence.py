from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import FileResponse

from spotted.core.security import get_current_user
from spotted.models.user import Profile
from spotted.schemas.evidence import EvidenceUploadResponse
from spotted.services import storage_service

router = APIRouter(prefix="/evidence", tags=["evidence"])


@router.post("", status_code=201, response_model=EvidenceUploadResponse)
async def upload_evidence(
    file: UploadFile = File(...),
    user: Profile = Depends(get_current_user)
):
    """Store a violation photo under the requester's namespace"""
    storage_service.check_upload_size(file.file)
    content = await file.read()
    path = storage_service.save_evidence(user.id, file.filename or "", content)
    return EvidenceUploadResponse(path=path, url=storage_service.evidence_url(path))


@router.get("/{owner_id}/{filename}")
async def get_evidence(
    owner_id: str,
    filename: str,
    user: Profile = Depends(get_current_user)
):
    """Stream a stored photo; only its owner can read it"""
    target = storage_service.resolve_evidence(user.id, owner_id, filename)
    return FileResponse(target)
