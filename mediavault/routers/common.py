from __future__ import annotations

from ..models import Album, Media
from ..quota import QuotaView, format_storage_size
from ..schemas import AlbumResponse, MediaResponse, QuotaResponse, StorageUsageResponse


def quota_to_response(quota: QuotaView) -> QuotaResponse:
    return QuotaResponse(
        used_bytes=quota.used_bytes,
        total_bytes=quota.total_bytes,
        percentage=quota.percentage,
        used_gb=quota.used_gb,
        total_gb=quota.total_gb,
    )


def usage_to_response(quota: QuotaView) -> StorageUsageResponse:
    return StorageUsageResponse(
        **quota_to_response(quota).model_dump(),
        available_bytes=quota.available_bytes,
        formatted_used=format_storage_size(quota.used_bytes),
        formatted_total=format_storage_size(quota.total_bytes),
        formatted_available=format_storage_size(quota.available_bytes),
    )


def media_to_response(media: Media) -> MediaResponse:
    return MediaResponse(
        id=media.id,
        url=media.url,
        original_name=media.original_name,
        type=media.media_type,
        size=media.size or 0,
        favorite=bool(media.favorite),
        album_id=media.album_id,
        is_locked=bool(media.locked),
        created_at=media.created_at,
    )


def album_to_response(album: Album) -> AlbumResponse:
    return AlbumResponse(
        id=album.id,
        name=album.name,
        description=album.description or "",
        category=album.category or "personal",
        cover_url=album.cover_url or "",
        parent_album_id=album.parent_album_id,
        is_folder=bool(album.is_folder),
        created_at=album.created_at,
        updated_at=album.updated_at,
    )
