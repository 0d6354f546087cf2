from __future__ import annotations

import datetime as dt
import logging
import math
from dataclasses import dataclass
from typing import BinaryIO, Callable, Optional, Sequence

from .albums import AlbumHierarchyManager, attach, get_owned_album, get_owned_media, refresh_cover, refresh_cover_by_id
from .blobstore import StoredBlob, destroy_quietly
from .db import Database
from .errors import Conflict, InvalidArgument, NotFound
from .models import Media, utcnow
from .quota import QuotaCalculator, QuotaView
from .validators import parse_id, parse_optional_id, valid_ids

logger = logging.getLogger(__name__)

Clock = Callable[[], dt.datetime]


@dataclass(frozen=True)
class MediaChange:
    media: Media
    quota: QuotaView


@dataclass(frozen=True)
class BulkChange:
    count: int
    quota: QuotaView


@dataclass(frozen=True)
class IncomingFile:
    filename: str
    content_type: str
    stream: BinaryIO
    size: int


@dataclass(frozen=True)
class UploadResult:
    media: list[Media]
    quota: QuotaView


def media_kind(content_type: str | None) -> str:
    content_type = (content_type or "").lower()
    if content_type.startswith("video/"):
        return "video"
    if content_type.startswith("image/"):
        return "image"
    raise InvalidArgument("Only image or video files allowed")


def days_left(media: Media, now: dt.datetime) -> int:
    if media.scheduled_delete_at is None:
        return 0
    remaining = (media.scheduled_delete_at - now).total_seconds() / 86400
    return max(0, math.ceil(remaining))


class MediaLifecycleManager:
    """State transitions for single media items: trash, restore, favorite, lock, delete.

    Every state-changing call returns the caller's quota recomputed inside the
    same transaction.
    """

    def __init__(
        self,
        database: Database,
        blob_store,
        quota: QuotaCalculator,
        albums: AlbumHierarchyManager,
        *,
        clock: Clock = utcnow,
        retention_days: int = 15,
        blob_folder: str = "user_uploads",
        max_upload_bytes: int = 100 * 1024 * 1024,
        max_upload_files: int = 10,
    ):
        self.database = database
        self.blob_store = blob_store
        self.quota = quota
        self.albums = albums
        self.clock = clock
        self.retention = dt.timedelta(days=retention_days)
        self.blob_folder = blob_folder
        self.max_upload_bytes = max_upload_bytes
        self.max_upload_files = max_upload_files

    # ---- Reads

    def get_quota(self, user_id: int) -> QuotaView:
        with self.database.reader() as db:
            return self.quota.compute(db, user_id)

    def list_library(self, user_id: int) -> list[Media]:
        with self.database.reader() as db:
            return (
                db.query(Media)
                .filter(Media.user_id == user_id, Media.in_trash.is_(False), Media.locked.is_(False))
                .order_by(Media.created_at.desc())
                .all()
            )

    def list_trash(self, user_id: int) -> list[tuple[Media, int]]:
        now = self.clock()
        with self.database.reader() as db:
            items = (
                db.query(Media)
                .filter(Media.user_id == user_id, Media.in_trash.is_(True), Media.locked.is_(False))
                .order_by(Media.trashed_at.desc())
                .all()
            )
            return [(m, days_left(m, now)) for m in items]

    # ---- Upload

    def upload(self, user_id: int, files: Sequence[IncomingFile], album_id: Optional[str] = None) -> UploadResult:
        """Store every file in the blob store, then record them all in one transaction.

        Nothing is written unless every blob upload succeeds; blobs already
        stored are destroyed again if the metadata write fails.
        """
        if not files:
            raise InvalidArgument("No files uploaded")
        if len(files) > self.max_upload_files:
            raise InvalidArgument(f"At most {self.max_upload_files} files per upload")
        album_id = parse_optional_id(album_id, "album ID")
        kinds = []
        for incoming in files:
            kinds.append(media_kind(incoming.content_type))
            if incoming.size > self.max_upload_bytes:
                raise InvalidArgument(f"{incoming.filename} exceeds the upload size limit")
        if album_id is not None:
            with self.database.reader() as db:
                get_owned_album(db, user_id, album_id)

        stored: list[tuple[IncomingFile, str, StoredBlob]] = []
        try:
            for incoming, kind in zip(files, kinds):
                blob = self.blob_store.put(incoming.stream, kind, self.blob_folder, content_type=incoming.content_type)
                stored.append((incoming, kind, blob))

            with self.database.transaction() as db:
                album = get_owned_album(db, user_id, album_id, lock=True) if album_id else None
                created = []
                for incoming, kind, blob in stored:
                    now = self.clock()
                    media = Media(
                        user_id=user_id,
                        url=blob.url,
                        object_id=blob.object_id,
                        original_name=incoming.filename,
                        media_type=kind,
                        size=incoming.size,
                        created_at=now,
                        updated_at=now,
                    )
                    attach(media, album, now)
                    db.add(media)
                    created.append(media)
                if album is not None:
                    refresh_cover(db, album)
                db.flush()
                quota = self.quota.compute(db, user_id)
        except Exception:
            for _, kind, blob in stored:
                destroy_quietly(self.blob_store, blob.object_id, kind)
            raise
        logger.info(f"User {user_id} uploaded {len(created)} files")
        return UploadResult(media=created, quota=quota)

    # ---- Single-item transitions

    def trash(self, user_id: int, media_id: str) -> MediaChange:
        media_id = parse_id(media_id, "media ID")
        with self.database.transaction() as db:
            media = get_owned_media(db, user_id, media_id, lock=True)
            if media.in_trash:
                raise Conflict("Media is already in trash")
            if media.locked:
                raise Conflict("Locked media must be unlocked before it can be trashed")
            self._mark_trashed(media, self.clock())
            db.flush()
            quota = self.quota.compute(db, user_id)
        logger.info(f"User {user_id} trashed media {media_id}, delete scheduled {media.scheduled_delete_at}")
        return MediaChange(media=media, quota=quota)

    def restore(self, user_id: int, media_id: str) -> MediaChange:
        media_id = parse_id(media_id, "media ID")
        with self.database.transaction() as db:
            media = get_owned_media(db, user_id, media_id, lock=True)
            if not media.in_trash:
                raise NotFound("Media not found in trash")
            self._mark_restored(media)
            db.flush()
            quota = self.quota.compute(db, user_id)
        logger.info(f"User {user_id} restored media {media_id}")
        return MediaChange(media=media, quota=quota)

    def toggle_favorite(self, user_id: int, media_id: str) -> Media:
        media_id = parse_id(media_id, "media ID")
        with self.database.transaction() as db:
            media = get_owned_media(db, user_id, media_id, lock=True)
            media.favorite = not media.favorite
        return media

    def toggle_lock(self, user_id: int, media_id: str) -> MediaChange:
        """Flip the locked flag. Album membership is kept; trashed media cannot be locked."""
        media_id = parse_id(media_id, "media ID")
        with self.database.transaction() as db:
            media = get_owned_media(db, user_id, media_id, lock=True)
            if media.locked:
                media.locked = False
                media.locked_at = None
            else:
                if media.in_trash:
                    raise Conflict("Restore the media before locking it")
                media.locked = True
                media.locked_at = self.clock()
            refresh_cover_by_id(db, media.album_id)
            db.flush()
            quota = self.quota.compute(db, user_id)
        logger.info(f"User {user_id} {'locked' if media.locked else 'unlocked'} media {media_id}")
        return MediaChange(media=media, quota=quota)

    def permanent_delete(self, user_id: int, media_id: str) -> QuotaView:
        """Hard-delete a trashed item. Active media must be trashed first."""
        media_id = parse_id(media_id, "media ID")
        with self.database.transaction() as db:
            media = get_owned_media(db, user_id, media_id, lock=True)
            if not media.in_trash:
                raise Conflict("Only media in trash can be permanently deleted")
            self._hard_delete(db, media)
            quota = self.quota.compute(db, user_id)
        return quota

    def move_to_album(self, user_id: int, media_id: str, target_album_id: Optional[str]) -> Media:
        return self.albums.move_media(user_id, media_id, target_album_id)

    # ---- Bulk transitions

    def bulk_trash(self, user_id: int, media_ids: list[str]) -> BulkChange:
        ids = valid_ids(media_ids)
        now = self.clock()
        count = 0
        with self.database.transaction() as db:
            for media in self._owned(db, user_id, ids):
                if not media.in_trash and not media.locked:
                    self._mark_trashed(media, now)
                    count += 1
            db.flush()
            quota = self.quota.compute(db, user_id)
        logger.info(f"User {user_id} trashed {count} items")
        return BulkChange(count=count, quota=quota)

    def bulk_restore(self, user_id: int, media_ids: list[str]) -> BulkChange:
        ids = valid_ids(media_ids)
        count = 0
        with self.database.transaction() as db:
            for media in self._owned(db, user_id, ids):
                if media.in_trash:
                    self._mark_restored(media)
                    count += 1
            db.flush()
            quota = self.quota.compute(db, user_id)
        logger.info(f"User {user_id} restored {count} items")
        return BulkChange(count=count, quota=quota)

    def bulk_permanent_delete(self, user_id: int, media_ids: list[str]) -> BulkChange:
        """Permanent delete for the trashed subset of ``media_ids``; active items are skipped."""
        ids = valid_ids(media_ids)
        count = 0
        with self.database.transaction() as db:
            for media in self._owned(db, user_id, ids):
                if media.in_trash:
                    self._hard_delete(db, media)
                    count += 1
            quota = self.quota.compute(db, user_id)
        return BulkChange(count=count, quota=quota)

    def empty_trash(self, user_id: int) -> BulkChange:
        count = 0
        with self.database.transaction() as db:
            items = (
                db.query(Media)
                .filter(Media.user_id == user_id, Media.in_trash.is_(True))
                .with_for_update()
                .all()
            )
            for media in items:
                self._hard_delete(db, media)
                count += 1
            quota = self.quota.compute(db, user_id)
        logger.info(f"User {user_id} emptied trash: {count} items deleted")
        return BulkChange(count=count, quota=quota)

    # ---- Helpers

    def _owned(self, db, user_id: int, ids: list[str]) -> list[Media]:
        if not ids:
            return []
        return (
            db.query(Media)
            .filter(Media.id.in_(ids), Media.user_id == user_id)
            .with_for_update()
            .all()
        )

    def _mark_trashed(self, media: Media, now: dt.datetime) -> None:
        media.in_trash = True
        media.trashed_at = now
        media.scheduled_delete_at = now + self.retention

    @staticmethod
    def _mark_restored(media: Media) -> None:
        media.in_trash = False
        media.trashed_at = None
        media.scheduled_delete_at = None

    def _hard_delete(self, db, media: Media) -> None:
        # The record is deleted even when the blob destroy fails.
        destroy_quietly(self.blob_store, media.object_id, media.media_type)
        album_id = media.album_id
        db.delete(media)
        db.flush()
        refresh_cover_by_id(db, album_id)
        logger.info(f"Permanently deleted media {media.id} of user {media.user_id}")
