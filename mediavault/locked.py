"""
Locked folder: a password-gated, short-lived access window over locked media.

The window is independent of the bearer token; a caller who is already
authenticated still needs a live session here before any locked item is
listed or resolved. Locked items are addressed by an opaque reference
(16 hex chars) instead of their id.
"""

from __future__ import annotations

import datetime as dt
import hashlib
import hmac
import logging
import re
from typing import Callable, Optional

from sqlalchemy.orm import Session

from .db import Database
from .errors import Forbidden, InvalidArgument, NotFound, Unauthorized
from .models import LockedFolderSession, Media, utcnow
from .security import hash_password, verify_password

logger = logging.getLogger(__name__)

Clock = Callable[[], dt.datetime]

REFERENCE_LENGTH = 16
_REFERENCE_RE = re.compile(r"^[0-9a-f]{16}$")


def session_is_live(record: Optional[LockedFolderSession], now: dt.datetime) -> bool:
    return bool(
        record is not None
        and record.has_access
        and record.session_expires_at is not None
        and record.session_expires_at > now
    )


class LockedFolderManager:
    def __init__(
        self,
        database: Database,
        *,
        reference_secret: str,
        clock: Clock = utcnow,
        session_minutes: int = 5,
        min_password_length: int = 6,
    ):
        self.database = database
        self.clock = clock
        self.window = dt.timedelta(minutes=session_minutes)
        self.min_password_length = min_password_length
        self._reference_key = reference_secret.encode("utf-8")

    def _record(self, db: Session, user_id: int, *, lock: bool = False) -> Optional[LockedFolderSession]:
        q = db.query(LockedFolderSession).filter(LockedFolderSession.user_id == user_id)
        if lock:
            q = q.with_for_update()
        return q.one_or_none()

    # ---- Password and session

    def has_password(self, user_id: int) -> bool:
        with self.database.reader() as db:
            return self._record(db, user_id) is not None

    def set_password(self, user_id: int, password: str) -> LockedFolderSession:
        """Set (or replace) the password; the caller gets a fresh access window."""
        if not password or len(password) < self.min_password_length:
            raise InvalidArgument(f"Password must be at least {self.min_password_length} characters")
        password_hash = hash_password(password)
        now = self.clock()
        with self.database.transaction() as db:
            record = self._record(db, user_id, lock=True)
            if record is None:
                record = LockedFolderSession(user_id=user_id, created_at=now)
                db.add(record)
            record.password_hash = password_hash
            self._grant(record, now)
        logger.info(f"Locked folder password set for user {user_id}")
        return record

    def verify_password(self, user_id: int, password: str) -> LockedFolderSession:
        if not password:
            raise InvalidArgument("Password required")
        with self.database.transaction() as db:
            record = self._record(db, user_id, lock=True)
            if record is None:
                raise NotFound("No password set. Please set a password first.")
            if not verify_password(password, record.password_hash):
                logger.info(f"Locked folder password rejected for user {user_id}")
                raise Unauthorized("Invalid password")
            self._grant(record, self.clock())
        return record

    def check_access(self, user_id: int) -> bool:
        """Whether the window is open; an open window gets ``last_access_at`` bumped, not extended."""
        now = self.clock()
        with self.database.transaction() as db:
            record = self._record(db, user_id, lock=True)
            live = session_is_live(record, now)
            if live:
                record.last_access_at = now
        return live

    def refresh_access(self, user_id: int) -> dt.datetime:
        now = self.clock()
        with self.database.transaction() as db:
            record = self._record(db, user_id, lock=True)
            if not session_is_live(record, now):
                raise Unauthorized("Access expired")
            record.session_expires_at = now + self.window
            record.last_access_at = now
        return record.session_expires_at

    def clear_access(self, user_id: int) -> None:
        with self.database.transaction() as db:
            record = self._record(db, user_id, lock=True)
            if record is not None:
                record.has_access = False
                record.session_expires_at = None
        logger.info(f"Locked folder access cleared for user {user_id}")

    def _grant(self, record: LockedFolderSession, now: dt.datetime) -> None:
        record.has_access = True
        record.last_access_at = now
        record.session_expires_at = now + self.window

    # ---- Gated reads

    def _require_access(self, db: Session, user_id: int) -> None:
        if not session_is_live(self._record(db, user_id), self.clock()):
            raise Forbidden("Access denied. Please verify password first.")

    def reference_for(self, media: Media) -> str:
        """Stable opaque handle for a locked item, recomputable from the row alone."""
        created = media.created_at.isoformat() if media.created_at else ""
        message = f"{media.id}:{media.original_name}:{created}:{media.reference_salt}".encode("utf-8")
        return hmac.new(self._reference_key, message, hashlib.sha256).hexdigest()[:REFERENCE_LENGTH]

    def _locked_media(self, db: Session, user_id: int) -> list[Media]:
        return (
            db.query(Media)
            .filter(Media.user_id == user_id, Media.locked.is_(True), Media.in_trash.is_(False))
            .order_by(Media.locked_at.desc())
            .all()
        )

    def list_locked(self, user_id: int) -> list[tuple[Media, str]]:
        with self.database.reader() as db:
            self._require_access(db, user_id)
            return [(m, self.reference_for(m)) for m in self._locked_media(db, user_id)]

    def access_by_reference(self, user_id: int, reference: str) -> Media:
        if not isinstance(reference, str) or not _REFERENCE_RE.match(reference):
            raise InvalidArgument("Invalid reference")
        with self.database.reader() as db:
            self._require_access(db, user_id)
            for media in self._locked_media(db, user_id):
                if hmac.compare_digest(self.reference_for(media), reference):
                    return media
        raise NotFound("Media not found")
