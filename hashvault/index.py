# -*- coding: utf-8 -*-
"""Metadata index backed by SQLAlchemy.

The index maps record ids and fingerprints to :class:`FileRecord` rows. The
``fingerprint`` column carries a unique constraint, so the database itself
decides which of two concurrent inserts of the same content wins.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Set

from sqlalchemy import (
    BigInteger,
    DateTime,
    String,
    Text,
    create_engine,
    delete,
    func,
    select,
    update,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from .exceptions import Conflict, NotFound, StorageFailure
from .models import FileRecord

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class FileRow(Base):
    __tablename__ = "files"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    fingerprint: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    filename: Mapped[str] = mapped_column(String(500), nullable=False)
    storage_ref: Mapped[str] = mapped_column(String(1000), unique=True, nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    content_type: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    @classmethod
    def from_record(cls, record: FileRecord) -> "FileRow":
        return cls(**record._asdict())

    def to_record(self) -> FileRecord:
        uploaded_at = self.uploaded_at
        # SQLite hands back naive datetimes.
        if uploaded_at.tzinfo is None:
            uploaded_at = uploaded_at.replace(tzinfo=timezone.utc)

        return FileRecord(
            id=self.id,
            fingerprint=self.fingerprint,
            filename=self.filename,
            storage_ref=self.storage_ref,
            size=self.size,
            content_type=self.content_type,
            description=self.description,
            uploaded_at=uploaded_at,
        )


def _utc(value: datetime) -> datetime:
    """Return `value` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def create_index_engine(url: str, **kwargs) -> Engine:
    """Create an engine for `url`.

    In-memory SQLite databases share one connection across threads so every
    session sees the same data. File-backed SQLite databases get their parent
    directory created.
    """
    parsed = make_url(url)

    if parsed.get_backend_name() == "sqlite":
        database = parsed.database
        kwargs.setdefault(
            "connect_args", {"check_same_thread": False, "timeout": 30}
        )

        if not database or database == ":memory:":
            kwargs.setdefault("poolclass", StaticPool)
        else:
            Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)

    return create_engine(parsed, **kwargs)


class MetadataIndex(object):
    """Record storage with atomic, constraint-checked writes.

    Every method runs in its own session and transaction. Nothing is cached
    between calls, so concurrent callers never overwrite each other's changes.

    Args:
        engine: SQLAlchemy engine to store records in. The schema is created
            if missing.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.Session = sessionmaker(engine, expire_on_commit=False)
        Base.metadata.create_all(engine)

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "MetadataIndex":
        return cls(create_index_engine(url, **kwargs))

    @contextmanager
    def _transaction(self):
        try:
            with self.Session.begin() as session:
                yield session
        except IntegrityError as exc:
            raise Conflict(str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            raise StorageFailure("Metadata index error: {0}".format(exc)) from exc

    def find_by_fingerprint(self, fingerprint: str) -> Optional[FileRecord]:
        with self._transaction() as session:
            row = session.scalars(
                select(FileRow).where(FileRow.fingerprint == fingerprint)
            ).one_or_none()
            return row.to_record() if row else None

    def find_by_id(self, id: str) -> Optional[FileRecord]:
        with self._transaction() as session:
            row = session.get(FileRow, id)
            return row.to_record() if row else None

    def insert(self, record: FileRecord) -> None:
        """Add `record`.

        Raises:
            Conflict: If the id, fingerprint or storage ref is already live.
        """
        row = FileRow.from_record(record._replace(uploaded_at=_utc(record.uploaded_at)))

        with self._transaction() as session:
            session.add(row)

        logger.debug("Indexed %s (%s)", record.id, record.fingerprint)

    def update(self, record: FileRecord) -> None:
        """Overwrite the stored fields of `record` in a single statement.

        Raises:
            NotFound: If no record with ``record.id`` is live.
            Conflict: If the new values collide with another record.
        """
        values = record._asdict()
        del values["id"]
        values["uploaded_at"] = _utc(record.uploaded_at)

        with self._transaction() as session:
            result = session.execute(
                update(FileRow).where(FileRow.id == record.id).values(**values)
            )
            if result.rowcount == 0:
                raise NotFound("No record with id {0}".format(record.id))

        logger.debug("Updated %s", record.id)

    def remove(self, id: str) -> bool:
        """Delete the record with `id`. Returns whether a record was removed;
        removing an absent id is not an error.
        """
        with self._transaction() as session:
            result = session.execute(delete(FileRow).where(FileRow.id == id))

        logger.debug("Unindexed %s", id)
        return result.rowcount > 0

    def list_all(self) -> List[FileRecord]:
        """Return all records, newest upload first."""
        with self._transaction() as session:
            rows = session.scalars(
                select(FileRow).order_by(
                    FileRow.uploaded_at.desc(), FileRow.id.desc()
                )
            )
            return [row.to_record() for row in rows]

    def storage_refs(self) -> Set[str]:
        with self._transaction() as session:
            return set(session.scalars(select(FileRow.storage_ref)))

    def count(self) -> int:
        with self._transaction() as session:
            return session.scalar(select(func.count()).select_from(FileRow))

    def __len__(self) -> int:
        return self.count()
