from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..schemas import (
    AlbumAddMediaRequest,
    AlbumCreate,
    AlbumDeleteResponse,
    AlbumDetailResponse,
    AlbumMoveRequest,
    AlbumPathEntry,
    AlbumResponse,
    AlbumUpdate,
    BulkMoveMediaRequest,
    BulkMoveMediaResponse,
    MoveMediaRequest,
    MoveMediaResponse,
)
from ..security import get_current_user_id
from ..services import Services, get_services
from .common import album_to_response, media_to_response

router = APIRouter(prefix="/albums", tags=["albums"])


def _detail(services: Services, user_id: int, album_id: str) -> AlbumDetailResponse:
    album, members = services.albums.get(user_id, album_id)
    return AlbumDetailResponse(
        **album_to_response(album).model_dump(),
        media=[media_to_response(m) for m in members],
    )


@router.post("", response_model=AlbumResponse, status_code=201)
def create_album(payload: AlbumCreate, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    album = services.albums.create(
        user_id,
        payload.name,
        parent_id=payload.parent_album_id,
        is_folder=payload.is_folder,
        description=payload.description,
        category=payload.category,
    )
    return album_to_response(album)


@router.get("", response_model=list[AlbumResponse])
def list_albums(
    parent_id: Optional[str] = Query(default=None, alias="parentId"),
    user_id: int = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    """Albums and folders directly under ``parentId`` (root when omitted)."""
    return [album_to_response(a) for a in services.albums.list_children(user_id, parent_id)]


@router.get("/all", response_model=list[AlbumResponse])
def list_all_albums(user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    return [album_to_response(a) for a in services.albums.list_all(user_id)]


@router.post("/move-media", response_model=MoveMediaResponse)
def move_media(payload: MoveMediaRequest, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    media = services.albums.move_media(user_id, payload.media_id, payload.target_album_id)
    message = "Media moved to album" if media.album_id else "Media moved to main library"
    return MoveMediaResponse(message=message, media=media_to_response(media))


@router.post("/bulk-move-media", response_model=BulkMoveMediaResponse)
def bulk_move_media(payload: BulkMoveMediaRequest, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    count = services.albums.bulk_move_media(user_id, payload.media_ids, payload.target_album_id)
    return BulkMoveMediaResponse(message=f"Moved {count} items successfully", count=count)


@router.get("/{album_id}", response_model=AlbumDetailResponse)
def get_album(album_id: str, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    return _detail(services, user_id, album_id)


@router.get("/{album_id}/children", response_model=list[AlbumResponse])
def list_children(album_id: str, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    if album_id == "root":
        album_id = None
    return [album_to_response(a) for a in services.albums.list_children(user_id, album_id)]


@router.get("/{album_id}/path", response_model=list[AlbumPathEntry])
def album_path(album_id: str, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    return [AlbumPathEntry(id=a.id, name=a.name, is_folder=bool(a.is_folder)) for a in services.albums.resolve_path(user_id, album_id)]


@router.post("/{album_id}/add-media", response_model=AlbumDetailResponse)
def add_media(album_id: str, payload: AlbumAddMediaRequest, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    services.albums.add_media(user_id, album_id, payload.media_id)
    return _detail(services, user_id, album_id)


@router.delete("/{album_id}/remove-media/{media_id}", response_model=AlbumResponse)
def remove_media(album_id: str, media_id: str, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    album = services.albums.remove_media(user_id, album_id, media_id)
    return album_to_response(album)


@router.put("/{album_id}", response_model=AlbumResponse)
def update_album(album_id: str, payload: AlbumUpdate, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    album = services.albums.update(
        user_id,
        album_id,
        name=payload.name,
        description=payload.description,
        category=payload.category,
    )
    return album_to_response(album)


@router.put("/{album_id}/move", response_model=AlbumResponse)
def move_album(album_id: str, payload: AlbumMoveRequest, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    album = services.albums.move(user_id, album_id, payload.new_parent_id)
    return album_to_response(album)


@router.delete("/{album_id}", response_model=AlbumDeleteResponse)
def delete_album(album_id: str, user_id: int = Depends(get_current_user_id), services: Services = Depends(get_services)):
    result = services.albums.delete(user_id, album_id)
    return AlbumDeleteResponse(
        message="Album and all its contents deleted successfully",
        albums_deleted=result.albums_deleted,
        media_detached=result.media_detached,
    )
