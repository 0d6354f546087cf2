from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.pool import StaticPool

from .errors import Conflict, DependencyError

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """Owns the engine and session factory for one backing database.

    Built once at startup and handed to every manager; nothing in the package
    reaches for a process-wide engine.
    """

    def __init__(self, url: str, *, echo: bool = False):
        self.url = url
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        engine_kwargs = {"echo": echo, "connect_args": connect_args}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # In-memory SQLite lives and dies with a single connection.
            engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_pre_ping"] = True
        self.engine = create_engine(url, **engine_kwargs)
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

    def create_all(self) -> None:
        # Import for the side effect of registering the tables on Base.
        from . import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Database ping failed: {type(e).__name__}")
            return False

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Yield a session whose work commits on success and rolls back on any error."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except StaleDataError as e:
            session.rollback()
            logger.info(f"Concurrent modification detected: {e}")
            raise Conflict("The record was modified concurrently, retry the request") from e
        except IntegrityError as e:
            session.rollback()
            logger.info(f"Integrity violation: {e.orig}")
            raise Conflict("The record already exists or was modified concurrently") from e
        except OperationalError as e:
            session.rollback()
            logger.error(f"Database unavailable: {e}")
            raise DependencyError("Database unavailable") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def reader(self) -> Iterator[Session]:
        session = self.SessionLocal()
        try:
            yield session
        except OperationalError as e:
            logger.error(f"Database unavailable: {e}")
            raise DependencyError("Database unavailable") from e
        finally:
            session.close()
