from __future__ import annotations
import datetime as dt
from pydantic import BaseModel, Field

class CamelModel(BaseModel):
    model_config = {"populate_by_name": True, "alias_generator": lambda s: ''.join([s.split('_')[0]] + [w.capitalize() for w in s.split('_')[1:]])}

# ---- Storage

class QuotaResponse(CamelModel):
    used_bytes: int
    total_bytes: int
    percentage: float
    used_gb: str = Field(alias="usedGB")
    total_gb: str = Field(alias="totalGB")

class StorageUsageResponse(QuotaResponse):
    available_bytes: int
    formatted_used: str
    formatted_total: str
    formatted_available: str

# ---- Media

class MediaResponse(CamelModel):
    id: str
    url: str
    original_name: str
    type: str
    size: int
    favorite: bool = False
    album_id: str | None = None
    is_locked: bool = False
    created_at: dt.datetime | None = None

class TrashItemResponse(CamelModel):
    id: str
    url: str
    original_name: str
    type: str
    size: int
    trashed_at: dt.datetime | None = None
    scheduled_delete_at: dt.datetime | None = None
    days_left: int

class UploadResponse(CamelModel):
    message: str
    media: list[MediaResponse]
    storage: QuotaResponse

class MediaStateResponse(CamelModel):
    message: str
    media: MediaResponse
    scheduled_delete_at: dt.datetime | None = None
    storage: QuotaResponse | None = None

class FavoriteResponse(CamelModel):
    favorite: bool
    message: str

class MediaIDsRequest(CamelModel):
    media_ids: list[str] = Field(default_factory=list)

class BulkResponse(CamelModel):
    message: str
    count: int
    storage: QuotaResponse

class MessageWithStorageResponse(CamelModel):
    message: str
    storage: QuotaResponse

class MoveMediaRequest(CamelModel):
    media_id: str
    target_album_id: str | None = None

class BulkMoveMediaRequest(CamelModel):
    media_ids: list[str] = Field(default_factory=list)
    target_album_id: str | None = None

class MoveMediaResponse(CamelModel):
    message: str
    media: MediaResponse

class BulkMoveMediaResponse(CamelModel):
    message: str
    count: int

# ---- Albums

class AlbumCreate(CamelModel):
    name: str
    description: str = ""
    category: str = "personal"
    parent_album_id: str | None = None
    is_folder: bool = False

class AlbumUpdate(CamelModel):
    name: str | None = None
    description: str | None = None
    category: str | None = None

class AlbumMoveRequest(CamelModel):
    new_parent_id: str | None = None

class AlbumAddMediaRequest(CamelModel):
    media_id: str

class AlbumResponse(CamelModel):
    id: str
    name: str
    description: str = ""
    category: str = "personal"
    cover_url: str = ""
    parent_album_id: str | None = None
    is_folder: bool = False
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None

class AlbumDetailResponse(AlbumResponse):
    media: list[MediaResponse] = Field(default_factory=list)

class AlbumPathEntry(CamelModel):
    id: str
    name: str
    is_folder: bool

class AlbumDeleteResponse(CamelModel):
    message: str
    albums_deleted: int
    media_detached: int

# ---- Locked folder

class LockedPasswordRequest(CamelModel):
    password: str = ""

class HasPasswordResponse(CamelModel):
    has_password: bool

class LockedAccessResponse(CamelModel):
    has_access: bool

class LockedGrantResponse(CamelModel):
    message: str
    valid: bool = True
    expires_at: dt.datetime | None = None

class LockedMediaResponse(CamelModel):
    reference: str
    original_name: str
    type: str
    size: int
    url: str
    album_id: str | None = None
    locked_at: dt.datetime | None = None

class LockedMediaURLResponse(CamelModel):
    url: str
