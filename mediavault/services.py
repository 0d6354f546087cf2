from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Callable

from fastapi import Request

from .albums import AlbumHierarchyManager
from .config import Settings
from .db import Database
from .lifecycle import MediaLifecycleManager
from .locked import LockedFolderManager
from .models import utcnow
from .quota import QuotaCalculator
from .reaper import TrashReaper


@dataclass
class Services:
    """Everything a request handler needs, wired once at startup."""

    settings: Settings
    database: Database
    blob_store: object
    quota: QuotaCalculator
    albums: AlbumHierarchyManager
    media: MediaLifecycleManager
    locked: LockedFolderManager
    reaper: TrashReaper


def build_services(
    settings: Settings,
    database: Database,
    blob_store,
    *,
    clock: Callable[[], dt.datetime] = utcnow,
) -> Services:
    quota = QuotaCalculator(settings.storage_plan_bytes)
    albums = AlbumHierarchyManager(database, clock=clock)
    media = MediaLifecycleManager(
        database,
        blob_store,
        quota,
        albums,
        clock=clock,
        retention_days=settings.trash_retention_days,
        blob_folder=settings.blob_folder,
        max_upload_bytes=settings.upload_max_bytes,
        max_upload_files=settings.upload_max_files,
    )
    locked = LockedFolderManager(
        database,
        reference_secret=settings.locked_reference_secret,
        clock=clock,
        session_minutes=settings.locked_session_minutes,
        min_password_length=settings.locked_password_min_length,
    )
    reaper = TrashReaper(database, blob_store, clock=clock)
    return Services(
        settings=settings,
        database=database,
        blob_store=blob_store,
        quota=quota,
        albums=albums,
        media=media,
        locked=locked,
        reaper=reaper,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
