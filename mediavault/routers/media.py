from __future__ import annotations

import os
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from ..lifecycle import IncomingFile
from ..schemas import (
    BulkMoveMediaRequest,
    BulkMoveMediaResponse,
    BulkResponse,
    FavoriteResponse,
    MediaIDsRequest,
    MediaResponse,
    MediaStateResponse,
    MessageWithStorageResponse,
    MoveMediaRequest,
    MoveMediaResponse,
    QuotaResponse,
    UploadResponse,
)
from ..security import get_current_user_id
from ..services import Services, get_services
from .common import media_to_response, quota_to_response

router = APIRouter(prefix="/media", tags=["media"])


def _size_of(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    upload.file.seek(0, os.SEEK_END)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


@router.get("", response_model=list[MediaResponse])
def list_media(user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    """Main library: active, unlocked media, newest first."""
    return [media_to_response(m) for m in services.media.list_library(user_id)]


@router.get("/storage", response_model=QuotaResponse)
def get_storage(user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    return quota_to_response(services.media.get_quota(user_id))


@router.post("/upload", response_model=UploadResponse, status_code=201)
def upload_media(
    files: list[UploadFile] = File(...),
    album_id: Optional[str] = Form(default=None, alias="albumId"),
    user_id: int = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    incoming = [
        IncomingFile(
            filename=f.filename or "upload",
            content_type=f.content_type or "",
            stream=f.file,
            size=_size_of(f),
        )
        for f in files
    ]
    result = services.media.upload(user_id, incoming, album_id)
    return UploadResponse(
        message=f"Uploaded {len(result.media)} files",
        media=[media_to_response(m) for m in result.media],
        storage=quota_to_response(result.quota),
    )


@router.post("/bulk-trash", response_model=BulkResponse)
def bulk_trash(payload: MediaIDsRequest, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    result = services.media.bulk_trash(user_id, payload.media_ids)
    return BulkResponse(message=f"{result.count} items moved to trash", count=result.count, storage=quota_to_response(result.quota))


@router.post("/bulk-restore", response_model=BulkResponse)
def bulk_restore(payload: MediaIDsRequest, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    result = services.media.bulk_restore(user_id, payload.media_ids)
    return BulkResponse(message=f"{result.count} items restored", count=result.count, storage=quota_to_response(result.quota))


@router.post("/move-media", response_model=MoveMediaResponse)
def move_media(payload: MoveMediaRequest, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    media = services.media.move_to_album(user_id, payload.media_id, payload.target_album_id)
    message = "Media moved to album" if media.album_id else "Media moved to main library"
    return MoveMediaResponse(message=message, media=media_to_response(media))


@router.post("/bulk-move-media", response_model=BulkMoveMediaResponse)
def bulk_move_media(payload: BulkMoveMediaRequest, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    count = services.albums.bulk_move_media(user_id, payload.media_ids, payload.target_album_id)
    return BulkMoveMediaResponse(message=f"Moved {count} items successfully", count=count)


@router.post("/{media_id}/favorite", response_model=FavoriteResponse)
def toggle_favorite(media_id: str, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    media = services.media.toggle_favorite(user_id, media_id)
    return FavoriteResponse(
        favorite=media.favorite,
        message="Added to favorites" if media.favorite else "Removed from favorites",
    )


@router.post("/{media_id}/trash", response_model=MediaStateResponse)
def trash_media(media_id: str, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    change = services.media.trash(user_id, media_id)
    return MediaStateResponse(
        message="Moved to trash",
        media=media_to_response(change.media),
        scheduled_delete_at=change.media.scheduled_delete_at,
        storage=quota_to_response(change.quota),
    )


@router.post("/{media_id}/restore", response_model=MediaStateResponse)
def restore_media(media_id: str, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    change = services.media.restore(user_id, media_id)
    return MediaStateResponse(message="Restored from trash", media=media_to_response(change.media), storage=quota_to_response(change.quota))


@router.post("/{media_id}/lock", response_model=MediaStateResponse)
def toggle_lock(media_id: str, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    change = services.media.toggle_lock(user_id, media_id)
    message = "Moved to locked folder" if change.media.locked else "Removed from locked folder"
    return MediaStateResponse(message=message, media=media_to_response(change.media), storage=quota_to_response(change.quota))


@router.delete("/permanent/{media_id}", response_model=MessageWithStorageResponse)
def permanent_delete(media_id: str, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    quota = services.media.permanent_delete(user_id, media_id)
    return MessageWithStorageResponse(message="Permanently deleted", storage=quota_to_response(quota))
