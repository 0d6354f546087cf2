from __future__ import annotations

from fastapi import APIRouter, Depends

from ..schemas import (
    HasPasswordResponse,
    LockedAccessResponse,
    LockedGrantResponse,
    LockedMediaResponse,
    LockedMediaURLResponse,
    LockedPasswordRequest,
    MediaStateResponse,
)
from ..security import get_current_user_id
from ..services import Services, get_services
from .common import media_to_response, quota_to_response

router = APIRouter(prefix="/locked", tags=["locked"])


@router.get("/has-password", response_model=HasPasswordResponse)
def has_password(user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    return HasPasswordResponse(has_password=services.locked.has_password(user_id))


@router.post("/set-password", response_model=LockedGrantResponse)
def set_password(payload: LockedPasswordRequest, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    record = services.locked.set_password(user_id, payload.password)
    return LockedGrantResponse(message="Password set successfully", expires_at=record.session_expires_at)


@router.post("/verify-password", response_model=LockedGrantResponse)
def verify_password(payload: LockedPasswordRequest, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    record = services.locked.verify_password(user_id, payload.password)
    minutes = services.settings.locked_session_minutes
    return LockedGrantResponse(message=f"Access granted for {minutes} minutes", expires_at=record.session_expires_at)


@router.get("/check-access", response_model=LockedAccessResponse)
def check_access(user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    return LockedAccessResponse(has_access=services.locked.check_access(user_id))


@router.post("/refresh-access", response_model=LockedGrantResponse)
def refresh_access(user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    expires_at = services.locked.refresh_access(user_id)
    return LockedGrantResponse(message="Access refreshed", expires_at=expires_at)


@router.post("/clear-access", response_model=LockedGrantResponse)
def clear_access(user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    services.locked.clear_access(user_id)
    return LockedGrantResponse(message="Access cleared", valid=False)


@router.get("/media", response_model=list[LockedMediaResponse])
def list_locked(user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    return [
        LockedMediaResponse(
            reference=reference,
            original_name=m.original_name,
            type=m.media_type,
            size=m.size or 0,
            url=m.url,
            album_id=m.album_id,
            locked_at=m.locked_at,
        )
        for m, reference in services.locked.list_locked(user_id)
    ]


@router.post("/access/{reference}", response_model=LockedMediaURLResponse)
def access_locked(reference: str, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    media = services.locked.access_by_reference(user_id, reference)
    return LockedMediaURLResponse(url=media.url)


@router.post("/unlock/{reference}", response_model=MediaStateResponse)
def unlock_locked(reference: str, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    """Move a locked item back to the library; needs a live locked-folder session."""
    media = services.locked.access_by_reference(user_id, reference)
    change = services.media.toggle_lock(user_id, media.id)
    return MediaStateResponse(message="Removed from locked folder", media=media_to_response(change.media), storage=quota_to_response(change.quota))
