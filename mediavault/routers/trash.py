from __future__ import annotations
from fastapi import APIRouter, Depends
from ..schemas import TrashItemResponse, MediaIDsRequest, BulkResponse
from ..security import get_current_user_id
from ..services import Services, get_services
from .common import quota_to_response

router = APIRouter(prefix="/trash", tags=["trash"])

@router.get("", response_model=list[TrashItemResponse])
def list_trash(user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    """Trashed media, most recently trashed first, with days left before permanent deletion."""
    return [
        TrashItemResponse(
            id=m.id,
            url=m.url,
            original_name=m.original_name,
            type=m.media_type,
            size=m.size or 0,
            trashed_at=m.trashed_at,
            scheduled_delete_at=m.scheduled_delete_at,
            days_left=left,
        )
        for m, left in services.media.list_trash(user_id)
    ]

@router.post("/delete", response_model=BulkResponse)
def trash_delete(payload: MediaIDsRequest, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    result = services.media.bulk_permanent_delete(user_id, payload.media_ids)
    return BulkResponse(message=f"{result.count} items permanently deleted", count=result.count, storage=quota_to_response(result.quota))

@router.post("/empty", response_model=BulkResponse)
def trash_empty(user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    result = services.media.empty_trash(user_id)
    return BulkResponse(message=f"{result.count} items permanently deleted", count=result.count, storage=quota_to_response(result.quota))
