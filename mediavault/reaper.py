from __future__ import annotations

import datetime as dt
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from .albums import refresh_cover_by_id
from .blobstore import destroy_quietly
from .db import Database
from .models import Media, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReapReport:
    scanned: int
    deleted: int
    failed: int


class TrashReaper:
    """Hard-deletes trashed media whose grace period is over.

    Each item is removed in its own transaction; a failure is logged and the
    item stays trashed, so the next run picks it up again.
    """

    def __init__(self, database: Database, blob_store, *, clock: Callable[[], dt.datetime] = utcnow):
        self.database = database
        self.blob_store = blob_store
        self.clock = clock

    def expired_ids(self, now: dt.datetime) -> list[str]:
        with self.database.reader() as db:
            rows = (
                db.query(Media.id)
                .filter(Media.in_trash.is_(True), Media.scheduled_delete_at <= now)
                .order_by(Media.scheduled_delete_at.asc())
                .all()
            )
        return [row[0] for row in rows]

    def run_once(self) -> ReapReport:
        now = self.clock()
        ids = self.expired_ids(now)
        logger.info(f"Found {len(ids)} expired trash items to delete permanently")
        deleted = failed = 0
        for media_id in ids:
            try:
                if self._reap(media_id, now):
                    deleted += 1
            except Exception as e:
                failed += 1
                logger.error(f"Error deleting media {media_id}: {e}")
        report = ReapReport(scanned=len(ids), deleted=deleted, failed=failed)
        logger.info(f"Trash cleanup completed: {report}")
        return report

    def _reap(self, media_id: str, now: dt.datetime) -> bool:
        with self.database.transaction() as db:
            media = db.query(Media).filter(Media.id == media_id).with_for_update().one_or_none()
            # Restored or already removed since the scan.
            if media is None or not media.in_trash or media.scheduled_delete_at is None or media.scheduled_delete_at > now:
                return False
            destroy_quietly(self.blob_store, media.object_id, media.media_type)
            album_id = media.album_id
            db.delete(media)
            db.flush()
            refresh_cover_by_id(db, album_id)
        logger.info(f"Deleted expired media {media_id}")
        return True


class ReaperThread:
    """Runs a ``TrashReaper`` every ``interval`` seconds until stopped."""

    def __init__(self, reaper: TrashReaper, interval: float):
        self.reaper = reaper
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="trash-reaper", daemon=True)
        self._thread.start()
        logger.info(f"Trash reaper started, interval {self.interval}s")

    def stop(self, timeout: float = 10.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Trash reaper stopped")

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.reaper.run_once()
            except Exception as e:
                logger.error(f"Trash cleanup job error: {e}")
            self._stop.wait(self.interval)
