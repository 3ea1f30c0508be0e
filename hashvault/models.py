# -*- coding: utf-8 -*-
"""Value types shared by the stores and the vault."""

from collections import namedtuple
from datetime import timezone
from enum import Enum


class Outcome(str, Enum):
    """How an upload was resolved."""

    CREATED = "created"
    DUPLICATE = "duplicate"
    REPLACED = "replaced"


class OnConflict(str, Enum):
    """What an upload does when its fingerprint is already stored."""

    REJECT = "reject"
    REPLACE = "replace"


class FileRecord(
    namedtuple(
        "FileRecord",
        [
            "id",
            "fingerprint",
            "filename",
            "storage_ref",
            "size",
            "content_type",
            "description",
            "uploaded_at",
        ],
    )
):
    """Metadata of one stored blob.

    Attributes:
        id (str): Unique record id, never reused.
        fingerprint (str): Hex digest of the content. Unique among live
            records.
        filename (str): Original file name as supplied by the uploader.
        storage_ref (str): Location of the bytes in the blob store.
        size (int): Content length in bytes.
        content_type (str): MIME type of the content.
        description (str): Free text supplied by the uploader.
        uploaded_at (datetime): UTC time of creation or last replacement.
    """

    __slots__ = ()

    def to_dict(self):
        """Return the public, JSON-ready form of the record."""
        return {
            "id": self.id,
            "filename": self.filename,
            "size": self.size,
            "mimetype": self.content_type,
            "hash": self.fingerprint,
            "uploadDate": isoformat(self.uploaded_at),
            "description": self.description,
        }


class UploadResult(namedtuple("UploadResult", ["outcome", "record"])):
    """Outcome of an upload together with the record it resolved to."""

    __slots__ = ()

    @property
    def is_duplicate(self):
        return self.outcome is Outcome.DUPLICATE


class Download(namedtuple("Download", ["record", "data"])):
    """Record plus its content bytes."""

    __slots__ = ()


def isoformat(value):
    """Format an aware or naive-UTC datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")
