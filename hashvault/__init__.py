# -*- coding: utf-8 -*-
"""HashVault is a deduplicating file store. What does that mean? Simply, that
every upload is fingerprinted by its content's hash, and content that is
already stored is never stored twice.

Each upload ends in one of three outcomes:

- Created: the content is new, so its bytes and metadata are stored.
- Duplicate: the content is already stored and the caller asked to reject
  duplicates, so nothing changes.
- Replaced: the content is already stored and the caller asked to replace it,
  so the existing record keeps its id but takes the new bytes and metadata.

Bytes live in a PyFilesystem2 filesystem, metadata in a SQL database.
"""

import logging

from .__meta__ import (
    __title__,
    __summary__,
    __url__,
    __version__,
    __author__,
    __email__,
    __license__,
)

from .blobs import BlobStore
from .config import Settings
from .digest import digest
from .exceptions import (
    Conflict,
    HashVaultError,
    InvalidInput,
    NotFound,
    StorageFailure,
    StorageInconsistency,
    TooLarge,
)
from .index import MetadataIndex
from .models import Download, FileRecord, OnConflict, Outcome, UploadResult
from .vault import HashVault


logging.getLogger(__name__).addHandler(logging.NullHandler())


__all__ = (
    "BlobStore",
    "Conflict",
    "Download",
    "FileRecord",
    "HashVault",
    "HashVaultError",
    "InvalidInput",
    "MetadataIndex",
    "NotFound",
    "OnConflict",
    "Outcome",
    "Settings",
    "StorageFailure",
    "StorageInconsistency",
    "TooLarge",
    "UploadResult",
    "digest",
)
