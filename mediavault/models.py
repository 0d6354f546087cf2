from __future__ import annotations
import datetime as dt
import secrets
import uuid
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Text, BigInteger, Index
from .db import Base


def utcnow() -> dt.datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return uuid.uuid4().hex


class Album(Base):
    __tablename__ = "albums"
    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String, nullable=False, default="personal")
    # Derived from the first member, see albums.refresh_cover
    cover_url = Column(String, nullable=False, default="")
    parent_album_id = Column(String(32), ForeignKey("albums.id"), nullable=True, index=True)
    is_folder = Column(Boolean, nullable=False, default=False)

    version = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        Index("ix_albums_user_parent", "user_id", "parent_album_id"),
        Index("ix_albums_user_folder", "user_id", "is_folder"),
    )


class Media(Base):
    __tablename__ = "media"
    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(Integer, nullable=False, index=True)

    url = Column(String, nullable=False)
    original_name = Column(String, nullable=False)
    media_type = Column(String, nullable=False, default="image")  # image, video
    size = Column(BigInteger, nullable=False, default=0)
    object_id = Column(String, nullable=True)  # blob store key
    favorite = Column(Boolean, nullable=False, default=False)

    # Membership: the album side is derived from these two columns
    album_id = Column(String(32), ForeignKey("albums.id"), nullable=True, index=True)
    album_joined_at = Column(DateTime, nullable=True)

    # Trash fields, set and cleared together
    in_trash = Column(Boolean, nullable=False, default=False, index=True)
    trashed_at = Column(DateTime, nullable=True)
    scheduled_delete_at = Column(DateTime, nullable=True, index=True)

    # Lock fields, set and cleared together
    locked = Column(Boolean, nullable=False, default=False, index=True)
    locked_at = Column(DateTime, nullable=True)
    # Per-record secret mixed into the locked-media reference
    reference_salt = Column(String(32), nullable=False, default=lambda: secrets.token_hex(16))

    version = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        Index("ix_media_user_trash_created", "user_id", "in_trash", "created_at"),
        Index("ix_media_user_locked_trash", "user_id", "locked", "in_trash"),
    )


class LockedFolderSession(Base):
    """Password and access window for a user's locked folder (one row per user)."""
    __tablename__ = "locked_folder_sessions"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    has_access = Column(Boolean, nullable=False, default=False)
    last_access_at = Column(DateTime, nullable=True)
    session_expires_at = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
