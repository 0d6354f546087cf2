from __future__ import annotations
import logging
from dataclasses import dataclass
from sqlalchemy import func
from sqlalchemy.orm import Session
from .models import Media

logger = logging.getLogger(__name__)

GIB = 1024 ** 3


@dataclass(frozen=True)
class QuotaView:
    used_bytes: int
    total_bytes: int
    percentage: float

    @property
    def used_gb(self) -> str:
        return f"{self.used_bytes / GIB:.2f}"

    @property
    def total_gb(self) -> str:
        return f"{self.total_bytes / GIB:.2f}"

    @property
    def available_bytes(self) -> int:
        return max(0, self.total_bytes - self.used_bytes)


class QuotaCalculator:
    """Storage usage over a user's active media.

    Trashed items do not count; locked items do (locking frees no space).
    Always computed from the media table, never cached.
    """

    def __init__(self, total_bytes: int):
        self.total_bytes = total_bytes

    def used_bytes(self, db: Session, user_id: int) -> int:
        result = db.query(func.coalesce(func.sum(Media.size), 0)).filter(
            Media.user_id == user_id,
            Media.in_trash.is_(False),
        ).scalar()
        return int(result or 0)

    def compute(self, db: Session, user_id: int) -> QuotaView:
        used = self.used_bytes(db, user_id)
        percentage = (used / self.total_bytes * 100) if self.total_bytes > 0 else 0.0
        return QuotaView(used_bytes=used, total_bytes=self.total_bytes, percentage=percentage)


def format_storage_size(bytes_size: int) -> str:
    """Format storage size in human-readable format"""
    size = float(bytes_size)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} PB"
