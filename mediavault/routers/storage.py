from __future__ import annotations
from fastapi import APIRouter, Depends
from ..schemas import StorageUsageResponse
from ..security import get_current_user_id
from ..services import Services, get_services
from .common import usage_to_response

router = APIRouter(prefix="/storage", tags=["storage"])

@router.get("/usage", response_model=StorageUsageResponse)
def get_storage_usage(user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    """Get current user's storage usage against the plan ceiling"""
    return usage_to_response(services.media.get_quota(user_id))
