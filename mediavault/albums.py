"""
Album/folder tree: creation, re-parenting, cascading delete, path resolution
and media membership.

Membership is stored once, on the media row (``album_id`` + ``album_joined_at``);
an album's member set is the query over that column, so the two directions of
the relationship cannot drift apart. The cover is the URL of the earliest
joined unlocked member and is recomputed in the same transaction as every
membership or lock change.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.orm import Session

from .db import Database
from .errors import Conflict, InvalidArgument, NotFound
from .models import Album, Media, utcnow
from .validators import parse_id, parse_optional_id, valid_ids

logger = logging.getLogger(__name__)

Clock = Callable[[], dt.datetime]


@dataclass(frozen=True)
class AlbumDeleteResult:
    albums_deleted: int
    media_detached: int


# ---- Row lookups shared with the lifecycle manager and the reaper


def get_owned_album(db: Session, user_id: int, album_id: str, *, lock: bool = False, what: str = "Album") -> Album:
    q = db.query(Album).filter(Album.id == album_id, Album.user_id == user_id)
    if lock:
        q = q.with_for_update()
    album = q.one_or_none()
    if album is None:
        raise NotFound(f"{what} not found")
    return album


def get_owned_media(db: Session, user_id: int, media_id: str, *, lock: bool = False) -> Media:
    q = db.query(Media).filter(Media.id == media_id, Media.user_id == user_id)
    if lock:
        q = q.with_for_update()
    media = q.one_or_none()
    if media is None:
        raise NotFound("Media not found")
    return media


def members_query(db: Session, album_id: str):
    return db.query(Media).filter(Media.album_id == album_id).order_by(Media.album_joined_at.asc(), Media.id.asc())


def refresh_cover(db: Session, album: Album) -> None:
    db.flush()
    # Locked members never surface outside the locked folder.
    first = members_query(db, album.id).filter(Media.locked.is_(False)).first()
    cover = first.url if first else ""
    if album.cover_url != cover:
        album.cover_url = cover


def refresh_cover_by_id(db: Session, album_id: Optional[str]) -> None:
    if not album_id:
        return
    album = db.get(Album, album_id)
    if album is not None:
        refresh_cover(db, album)


def attach(media: Media, album: Optional[Album], now: dt.datetime) -> None:
    if album is None:
        media.album_id = None
        media.album_joined_at = None
    else:
        media.album_id = album.id
        media.album_joined_at = now


class AlbumHierarchyManager:
    def __init__(self, database: Database, *, clock: Clock = utcnow):
        self.database = database
        self.clock = clock

    # ---- Reads

    def list_all(self, user_id: int) -> list[Album]:
        with self.database.reader() as db:
            return db.query(Album).filter(Album.user_id == user_id).order_by(Album.created_at.desc()).all()

    def list_children(self, user_id: int, album_id: Optional[str] = None) -> list[Album]:
        """Direct children of ``album_id`` (or the roots), folders first, then by name."""
        parent_id = parse_optional_id(album_id, "parent ID")
        with self.database.reader() as db:
            if parent_id is not None:
                get_owned_album(db, user_id, parent_id, what="Parent folder")
            return (
                db.query(Album)
                .filter(Album.user_id == user_id, Album.parent_album_id == parent_id)
                .order_by(Album.is_folder.desc(), Album.name.asc())
                .all()
            )

    def get(self, user_id: int, album_id: str) -> tuple[Album, list[Media]]:
        """The album and its visible members (locked and trashed items are hidden)."""
        album_id = parse_id(album_id, "album ID")
        with self.database.reader() as db:
            album = get_owned_album(db, user_id, album_id)
            members = (
                members_query(db, album.id)
                .filter(Media.locked.is_(False), Media.in_trash.is_(False))
                .all()
            )
            return album, members

    def resolve_path(self, user_id: int, album_id: str) -> list[Album]:
        """Ancestor chain from the root down to ``album_id``.

        A missing or cyclic ancestor ends the walk; the chain gathered so far
        is returned.
        """
        album_id = parse_id(album_id, "album ID")
        with self.database.reader() as db:
            album = get_owned_album(db, user_id, album_id)
            path = [album]
            seen = {album.id}
            current_id = album.parent_album_id
            while current_id and current_id not in seen:
                parent = (
                    db.query(Album)
                    .filter(Album.id == current_id, Album.user_id == user_id)
                    .one_or_none()
                )
                if parent is None:
                    logger.warning(f"Broken parent link {current_id} above album {album_id}")
                    break
                path.append(parent)
                seen.add(parent.id)
                current_id = parent.parent_album_id
            path.reverse()
            return path

    # ---- Tree mutations

    def create(
        self,
        user_id: int,
        name: str,
        parent_id: Optional[str] = None,
        is_folder: bool = False,
        description: str = "",
        category: str = "personal",
    ) -> Album:
        if not name or not name.strip():
            raise InvalidArgument("Name is required")
        parent_id = parse_optional_id(parent_id, "parent folder ID")
        now = self.clock()
        with self.database.transaction() as db:
            if parent_id is not None:
                get_owned_album(db, user_id, parent_id, what="Parent folder")
            album = Album(
                user_id=user_id,
                name=name.strip(),
                description=description or "",
                category=category or "personal",
                cover_url="",
                parent_album_id=parent_id,
                is_folder=bool(is_folder),
                created_at=now,
                updated_at=now,
            )
            db.add(album)
        logger.info(f"User {user_id} created {'folder' if album.is_folder else 'album'} {album.id}")
        return album

    def update(
        self,
        user_id: int,
        album_id: str,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Album:
        album_id = parse_id(album_id, "album ID")
        if name is not None and not name.strip():
            raise InvalidArgument("Name cannot be empty")
        with self.database.transaction() as db:
            album = get_owned_album(db, user_id, album_id, lock=True)
            if name is not None:
                album.name = name.strip()
            if description is not None:
                album.description = description
            if category is not None:
                album.category = category
            album.updated_at = self.clock()
        return album

    def is_ancestor(self, db: Session, user_id: int, ancestor_id: str, node_id: Optional[str]) -> bool:
        """True if ``ancestor_id`` is ``node_id`` or lies on its parent chain."""
        seen: set[str] = set()
        current_id = node_id
        while current_id and current_id not in seen:
            if current_id == ancestor_id:
                return True
            seen.add(current_id)
            current_id = (
                db.query(Album.parent_album_id)
                .filter(Album.id == current_id, Album.user_id == user_id)
                .scalar()
            )
        return False

    def move(self, user_id: int, album_id: str, new_parent_id: Optional[str]) -> Album:
        """Re-parent ``album_id``; rejects any move that would put it under itself."""
        album_id = parse_id(album_id, "album ID")
        new_parent_id = parse_optional_id(new_parent_id, "parent ID")
        if new_parent_id == album_id:
            raise Conflict("Cannot move folder into itself")
        with self.database.transaction() as db:
            album = get_owned_album(db, user_id, album_id, lock=True)
            if new_parent_id is not None:
                get_owned_album(db, user_id, new_parent_id, lock=True, what="New parent folder")
                if self.is_ancestor(db, user_id, album_id, new_parent_id):
                    raise Conflict("Cannot move folder into one of its own subfolders")
            album.parent_album_id = new_parent_id
            album.updated_at = self.clock()
        logger.info(f"User {user_id} moved album {album_id} under {new_parent_id or 'root'}")
        return album

    def delete(self, user_id: int, album_id: str) -> AlbumDeleteResult:
        """Delete ``album_id`` and every descendant; member media are detached, not deleted.

        Runs as one transaction so a failure leaves the whole subtree in place.
        """
        album_id = parse_id(album_id, "album ID")
        with self.database.transaction() as db:
            root = get_owned_album(db, user_id, album_id, lock=True)

            # Pre-order walk; reversed, every child comes before its parent.
            subtree: list[Album] = []
            seen: set[str] = set()
            stack = [root]
            while stack:
                node = stack.pop()
                if node.id in seen:
                    continue
                seen.add(node.id)
                subtree.append(node)
                children = (
                    db.query(Album)
                    .filter(Album.parent_album_id == node.id, Album.user_id == user_id)
                    .with_for_update()
                    .all()
                )
                stack.extend(children)

            members = db.query(Media).filter(Media.album_id.in_(list(seen))).with_for_update().all()
            for media in members:
                attach(media, None, self.clock())
            db.flush()

            for node in reversed(subtree):
                db.delete(node)
                db.flush()
        result = AlbumDeleteResult(albums_deleted=len(subtree), media_detached=len(members))
        logger.info(
            f"User {user_id} deleted album {album_id}: "
            f"{result.albums_deleted} albums removed, {result.media_detached} media detached"
        )
        return result

    # ---- Membership

    def add_media(self, user_id: int, album_id: str, media_id: str) -> Album:
        album_id = parse_id(album_id, "album ID")
        media_id = parse_id(media_id, "media ID")
        with self.database.transaction() as db:
            media = get_owned_media(db, user_id, media_id, lock=True)
            album = get_owned_album(db, user_id, album_id, lock=True)
            self._relocate(db, user_id, media, album)
        return album

    def remove_media(self, user_id: int, album_id: str, media_id: str) -> Album:
        album_id = parse_id(album_id, "album ID")
        media_id = parse_id(media_id, "media ID")
        with self.database.transaction() as db:
            album = get_owned_album(db, user_id, album_id, lock=True)
            media = get_owned_media(db, user_id, media_id, lock=True)
            if media.album_id != album.id:
                raise NotFound("Media not found in album")
            self._relocate(db, user_id, media, None)
        return album

    def move_media(self, user_id: int, media_id: str, target_album_id: Optional[str]) -> Media:
        """Move one item to ``target_album_id``, or to the main library when None."""
        media_id = parse_id(media_id, "media ID")
        target_album_id = parse_optional_id(target_album_id, "target album ID")
        with self.database.transaction() as db:
            media = get_owned_media(db, user_id, media_id, lock=True)
            target = None
            if target_album_id is not None:
                target = get_owned_album(db, user_id, target_album_id, lock=True, what="Target album")
            self._relocate(db, user_id, media, target)
        return media

    def bulk_move_media(self, user_id: int, media_ids: list[str], target_album_id: Optional[str]) -> int:
        ids = valid_ids(media_ids)
        target_album_id = parse_optional_id(target_album_id, "target album ID")
        moved = 0
        with self.database.transaction() as db:
            target = None
            if target_album_id is not None:
                target = get_owned_album(db, user_id, target_album_id, lock=True, what="Target album")
            if not ids:
                return 0
            items = (
                db.query(Media)
                .filter(Media.id.in_(ids), Media.user_id == user_id)
                .with_for_update()
                .all()
            )
            by_id = {m.id: m for m in items}
            for media_id in ids:
                media = by_id.get(media_id)
                if media is not None and self._relocate(db, user_id, media, target):
                    moved += 1
        logger.info(f"User {user_id} moved {moved} media to {target_album_id or 'main library'}")
        return moved

    def _relocate(self, db: Session, user_id: int, media: Media, target: Optional[Album]) -> bool:
        """Point ``media`` at ``target`` and refresh the covers of both albums involved."""
        source_id = media.album_id
        target_id = target.id if target is not None else None
        if source_id == target_id:
            return False
        attach(media, target, self.clock())
        if source_id is not None:
            source = db.get(Album, source_id)
            if source is not None:
                refresh_cover(db, source)
                source.updated_at = self.clock()
        if target is not None:
            refresh_cover(db, target)
            target.updated_at = self.clock()
        return True
