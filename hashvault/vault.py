"""Module for HashVault class."""

import io
import logging
import uuid
from datetime import timedelta
from typing import Callable, Iterable, List, Optional, Tuple, Union

from . import utils as u
from .blobs import BlobStore
from .config import DEFAULT_MAX_PAYLOAD_BYTES, Settings
from .digest import DEFAULT_ALGORITHM, check_algorithm, digest
from .exceptions import (
    Conflict,
    InvalidInput,
    NotFound,
    StorageInconsistency,
)
from .index import MetadataIndex
from .models import Download, FileRecord, OnConflict, Outcome, UploadResult

logger = logging.getLogger(__name__)


class HashVault(object):
    """Deduplicating file store. Uploads are keyed by the digest of their
    content: the first upload of some content creates a record, later uploads
    of the same content are either rejected as duplicates or replace that
    record, as the caller chooses per upload.

    Bytes live in a :class:`BlobStore` and metadata in a
    :class:`MetadataIndex`. Blobs are always written before the index entry
    that references them and removed before that entry is dropped, so the index
    never points at a blob that failed to persist.

    Attributes:
        blobs (BlobStore): Storage for file contents.
        index (MetadataIndex): Storage for file records.
        max_payload_bytes (int): Largest accepted upload. Larger payloads are
            rejected before hashing.
        algorithm (str): Hash algorithm used for fingerprints. Must be
            available in ``hashlib`` and at least 256 bits wide.
        clock (callable): Returns the current, timezone-aware time.
    """

    def __init__(self,
                 blobs: BlobStore,
                 index: MetadataIndex,
                 max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES,
                 algorithm: str = DEFAULT_ALGORITHM,
                 clock: Callable = u.utcnow):
        if max_payload_bytes <= 0:
            raise ValueError("max_payload_bytes must be positive")

        self.blobs = blobs
        self.index = index
        self.max_payload_bytes = max_payload_bytes
        self.algorithm = check_algorithm(algorithm)
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "HashVault":
        """Build a vault and its stores from `settings`, or from the
        environment when omitted.
        """
        if settings is None:
            settings = Settings()

        blobs = BlobStore(settings.storage_url,
                          depth=settings.depth,
                          width=settings.width,
                          dmode=settings.dmode)
        index = MetadataIndex.from_url(settings.database_url)

        return cls(blobs,
                   index,
                   max_payload_bytes=settings.max_payload_bytes,
                   algorithm=settings.algorithm)

    def upload(self,
               payload,
               filename: Optional[str] = None,
               description: Optional[str] = None,
               on_conflict: Union[OnConflict, str] = OnConflict.REJECT,
               content_type: Optional[str] = None) -> UploadResult:
        """Store `payload` unless its content is already stored.

        Args:
            payload: Bytes, text or readable binary object to store.
            filename: Original name of the file.
            description: Free text kept with the record. On replacement an
                empty description keeps the previous one.
            on_conflict: ``"reject"`` to leave an existing record with the same
                content untouched, ``"replace"`` to overwrite it.
            content_type: MIME type. Guessed from `filename` when omitted.

        Returns:
            UploadResult: ``CREATED`` with the new record, ``DUPLICATE`` with
            the untouched existing record, or ``REPLACED`` with the updated
            one.

        Raises:
            InvalidInput: If the payload is missing or empty, or `on_conflict`
                is unknown.
            TooLarge: If the payload exceeds :attr:`max_payload_bytes`.
            StorageFailure: If a blob write fails. The index is left
                untouched.
            StorageInconsistency: If the record to replace has lost its blob.
            NotFound: If the record to replace was deleted concurrently.
        """
        policy = self._policy(on_conflict)
        data = u.read_payload(payload, self.max_payload_bytes)
        fingerprint = digest(data, self.algorithm)
        filename = u.clean_filename(filename)
        content_type = content_type or u.guess_type(filename)

        existing = self.index.find_by_fingerprint(fingerprint)

        if existing is None:
            try:
                return self._create(data, fingerprint, filename, description,
                                    content_type)
            except Conflict as exc:
                # Usually a lost race to another upload of the same content.
                existing = self.index.find_by_fingerprint(fingerprint)
                if existing is None:
                    raise NotFound(
                        "No live record holds fingerprint {0} after the insert "
                        "conflicted: {1}".format(fingerprint, exc)) from exc

        if policy is OnConflict.REJECT:
            logger.info("Rejected duplicate of %s (%s)", existing.id, fingerprint)
            return UploadResult(Outcome.DUPLICATE, existing)

        return self._replace(existing, data, filename, description,
                             content_type)

    def get(self, id: str) -> Download:
        """Return the record with `id` and its content.

        Raises:
            NotFound: If no record with `id` exists.
            StorageInconsistency: If the record's blob is missing.
        """
        record = self.record(id)

        try:
            data = self.blobs.get(record.storage_ref)
        except NotFound as exc:
            raise self._inconsistent(record) from exc

        return Download(record, data)

    def open(self, id: str) -> Tuple[FileRecord, io.IOBase]:
        """Return the record with `id` and an open binary file object reading
        its content. The caller is responsible for closing the file.

        Raises:
            NotFound: If no record with `id` exists.
            StorageInconsistency: If the record's blob is missing.
        """
        record = self.record(id)

        try:
            return record, self.blobs.open(record.storage_ref)
        except NotFound as exc:
            raise self._inconsistent(record) from exc

    def delete(self, id: str) -> FileRecord:
        """Delete the record with `id` and its blob. Returns the deleted
        record.

        Raises:
            NotFound: If no record with `id` exists, including when a
                concurrent delete removed it first.
        """
        record = self.record(id)

        self.blobs.remove(record.storage_ref)
        if not self.index.remove(record.id):
            raise NotFound("No file with id {0}".format(id))

        logger.info("Deleted %s (%s)", record.id, record.filename)
        return record

    def list(self) -> List[FileRecord]:
        """Return all records, newest upload first."""
        return self.index.list_all()

    def find(self, fingerprint: str) -> Optional[FileRecord]:
        """Return the record whose content has `fingerprint`, if any."""
        return self.index.find_by_fingerprint(fingerprint)

    def record(self, id: str) -> FileRecord:
        """Return the record with `id` without reading its content.

        Raises:
            NotFound: If no record with `id` exists.
        """
        record = self.index.find_by_id(id)
        if record is None:
            raise NotFound("No file with id {0}".format(id))
        return record

    def orphans(self, min_age: float = 3600) -> Iterable[str]:
        """Return generator that yields storage refs of blobs no record
        references. Blobs modified less than `min_age` seconds ago are skipped
        since an upload may still be about to index them.
        """
        refs = list(self.blobs.files())
        live = self.index.storage_refs()
        cutoff = self.clock() - timedelta(seconds=min_age)

        for ref in refs:
            if ref in live:
                continue

            try:
                modified = self.blobs.modified(ref)
            except NotFound:
                continue

            if modified is None or modified <= cutoff:
                yield ref

    def sweep(self, min_age: float = 3600) -> List[str]:
        """Remove orphaned blobs and return their storage refs."""
        swept = []

        for ref in self.orphans(min_age=min_age):
            logger.warning("Removing orphaned blob %s", ref)
            self.blobs.remove(ref)
            swept.append(ref)

        return swept

    def dangling(self) -> Iterable[FileRecord]:
        """Return generator that yields records whose blob is missing."""
        for record in self.list():
            if not self.blobs.exists(record.storage_ref):
                yield record

    def __contains__(self, id: str) -> bool:
        return self.index.find_by_id(id) is not None

    def __iter__(self) -> Iterable[FileRecord]:
        return iter(self.list())

    def __len__(self) -> int:
        return self.index.count()

    def _create(self, data, fingerprint, filename, description, content_type):
        """Write a new blob and index it. If the insert raises
        :class:`Conflict` the staged blob is removed before it propagates.
        """
        ref = self.blobs.put(data, u.extension(filename))
        record = FileRecord(
            id=uuid.uuid4().hex,
            fingerprint=fingerprint,
            filename=filename,
            storage_ref=ref,
            size=len(data),
            content_type=content_type,
            description=description or "",
            uploaded_at=self.clock(),
        )

        try:
            self.index.insert(record)
        except Conflict:
            logger.warning("Insert of %s conflicted, discarding %s",
                           fingerprint, ref)
            self.blobs.remove(ref)
            raise

        logger.info("Created %s (%s, %d bytes)", record.id, filename,
                    record.size)
        return UploadResult(Outcome.CREATED, record)

    def _replace(self, existing, data, filename, description, content_type):
        try:
            self.blobs.replace(existing.storage_ref, data)
        except NotFound as exc:
            if self.index.find_by_id(existing.id) is None:
                raise NotFound(
                    "No file with id {0}".format(existing.id)) from exc
            raise self._inconsistent(existing) from exc

        record = existing._replace(
            filename=filename,
            size=len(data),
            content_type=content_type,
            description=description or existing.description,
            uploaded_at=self.clock(),
        )
        self.index.update(record)

        logger.info("Replaced %s (%s)", record.id, filename)
        return UploadResult(Outcome.REPLACED, record)

    def _inconsistent(self, record: FileRecord) -> StorageInconsistency:
        logger.warning("Record %s points at missing blob %s", record.id,
                       record.storage_ref)
        return StorageInconsistency(
            "Blob {0} of record {1} is missing".format(record.storage_ref,
                                                        record.id))

    @staticmethod
    def _policy(on_conflict) -> OnConflict:
        try:
            return OnConflict(on_conflict)
        except ValueError as exc:
            raise InvalidInput(
                "on_conflict must be 'reject' or 'replace', not {0!r}".format(
                    on_conflict)) from exc
