"""Module for BlobStore class."""

import io
import logging
import os
import secrets
import time
from contextlib import closing
from datetime import datetime
from typing import Iterable, Optional, Union

import fs as pyfs
import fs.errors
import fs.path
import fs.tools
from fs.base import FS
from fs.permissions import Permissions

from . import utils as u
from .exceptions import NotFound, StorageFailure

logger = logging.getLogger(__name__)

#: Attempts at drawing a fresh storage ref before giving up.
MAX_PUT_ATTEMPTS = 8

FS_ERRORS = (pyfs.errors.FSError, OSError)


def _failure(action: str, ref: str, exc: Exception) -> StorageFailure:
    return StorageFailure(
        "Could not {0} blob {1!r}: {2}".format(action, ref, exc))


class BlobStore(object):
    """Raw byte storage keyed by opaque, never-reused storage refs. Built on
  https://github.com/PyFilesystem/pyfilesystem2, so any filesystem it supports
  (local directory, memory, S3, ...) can hold the blobs.

    Attributes:
        fs: Filesystem holding the blobs.
        depth (int, optional): Depth of subfolders to create when saving a
            blob.
        width (int, optional): Width of each subfolder to create when saving a
            blob.
        dmode (int, optional): Directory mode permission to set for
            subdirectories. Defaults to ``0o755`` which allows owner/group to
            read/write and everyone else to read and everyone to execute.

  """

    def __init__(self,
                 root: Union[FS, str],
                 depth: Optional[int] = 2,
                 width: Optional[int] = 2,
                 dmode: Optional[int] = 0o755):

        self.fs = u.load_fs(root)
        self.depth = depth
        self.width = width
        self.dmode = dmode

    def put(self, data: bytes, extension: Optional[str] = None) -> str:
        """Store `data` under a newly generated storage ref. Existing refs are
    never overwritten.

    Args:
      data: Content to store.
      extension: Optional extension to append to the stored file.

    Returns:
      Storage ref of the new blob.

    Raises:
      StorageFailure: If the blob could not be written.

    """
        for _ in range(MAX_PUT_ATTEMPTS):
            ref = self._token_to_path(self._new_token(), extension)

            try:
                self._makedirs(pyfs.path.dirname(ref))
                with closing(self.fs.openbin(ref, mode="x")) as p:
                    p.write(data)

            except pyfs.errors.FileExists:
                logger.debug("Storage ref %s already taken, retrying", ref)
                continue

            except pyfs.errors.ResourceNotFound:
                # A concurrent remove pruned the shard folder.
                logger.debug("Shard folder of %s vanished, retrying", ref)
                continue

            except FS_ERRORS as exc:
                self._discard(ref)
                raise _failure("write", ref, exc) from exc

            logger.debug("Stored %d bytes at %s", len(data), ref)
            return ref

        raise StorageFailure(
            "Could not allocate a free storage ref after {0} attempts".format(
                MAX_PUT_ATTEMPTS))

    def get(self, ref: str) -> bytes:
        """Return the content stored at `ref`.

        Raises:
            NotFound: If `ref` does not exist.
            StorageFailure: If the blob could not be read.
        """
        try:
            return self.fs.readbytes(ref)
        except pyfs.errors.ResourceNotFound as exc:
            raise NotFound("Could not locate blob: {0}".format(ref)) from exc
        except FS_ERRORS as exc:
            raise _failure("read", ref, exc) from exc

    def open(self, ref: str) -> io.IOBase:
        """Return a binary file object reading the blob at `ref`. The caller is
        responsible for closing it.

        Raises:
            NotFound: If `ref` does not exist.
            StorageFailure: If the blob could not be opened.
        """
        try:
            return self.fs.openbin(ref, mode="r")
        except pyfs.errors.ResourceNotFound as exc:
            raise NotFound("Could not locate blob: {0}".format(ref)) from exc
        except FS_ERRORS as exc:
            raise _failure("open", ref, exc) from exc

    def replace(self, ref: str, data: bytes) -> None:
        """Overwrite the blob at `ref` with `data`. The new content is written
        to a temporary sibling first and then moved over `ref`, so readers never
        observe a partially written blob.

        Raises:
            NotFound: If `ref` does not exist.
            StorageFailure: If the blob could not be written.
        """
        if not self.exists(ref):
            raise NotFound("Could not locate blob: {0}".format(ref))

        tmp = "{0}.tmp-{1}".format(ref, secrets.token_hex(4))
        try:
            self.fs.writebytes(tmp, data)
            self.fs.move(tmp, ref, overwrite=True)
        except FS_ERRORS as exc:
            self._discard(tmp)
            raise _failure("replace", ref, exc) from exc

        logger.debug("Replaced %s with %d bytes", ref, len(data))

    def remove(self, ref: str) -> None:
        """Delete the blob at `ref` and any empty directories left behind. No
        exception is raised if the blob doesn't exist.

        Raises:
            StorageFailure: If an existing blob could not be removed.
        """
        try:
            self.fs.remove(ref)
        except pyfs.errors.ResourceNotFound:
            logger.debug("Blob %s already absent", ref)
        except FS_ERRORS as exc:
            raise _failure("remove", ref, exc) from exc
        else:
            logger.debug("Removed %s", ref)

        self._remove_empty(pyfs.path.dirname(ref))

    def exists(self, ref: str) -> bool:
        """Check whether a blob is stored at `ref`."""
        return self.fs.isfile(ref)

    def modified(self, ref: str) -> Optional[datetime]:
        """Return the last modification time of the blob at `ref`, or ``None``
        if the filesystem doesn't track it.

        Raises:
            NotFound: If `ref` does not exist.
        """
        try:
            return self.fs.getinfo(ref, namespaces=["details"]).modified
        except pyfs.errors.ResourceNotFound as exc:
            raise NotFound("Could not locate blob: {0}".format(ref)) from exc

    def files(self) -> Iterable[str]:
        """Return generator that yields the storage ref of every file in the
    :attr:`fs`.

    """
        for path in self.fs.walk.files():
            yield pyfs.path.relpath(path)

    def count(self) -> int:
        """Return count of the number of files in the backing :attr:`fs`.
        """
        return sum(1 for _ in self.fs.walk.files())

    def size(self) -> int:
        """Return the total size in bytes of all files in the :attr:`fs`.
        """
        return sum(info.size
                   for _, info in self.fs.walk.info(namespaces=['details'])
                   if not info.is_dir)

    def __contains__(self, ref: str) -> bool:
        return self.exists(ref)

    def __iter__(self) -> Iterable[str]:
        """Iterate over all storage refs in the backing store."""
        return self.files()

    def __len__(self) -> int:
        return self.count()

    def _new_token(self) -> str:
        """Random head for even sharding, hex nanosecond timestamp tail."""
        return secrets.token_hex(8) + format(time.time_ns(), "x")

    def _discard(self, path: str) -> None:
        """Best-effort removal of a partially written file."""
        try:
            if self.fs.isfile(path):
                self.fs.remove(path)
        except FS_ERRORS:
            logger.warning("Could not remove partial blob %s", path)

    def _remove_empty(self, path: str) -> None:
        """Successively remove all empty folders starting with `path` and
        proceeding "up" through directory tree until reaching the root.
        """
        if not path or path == "/":
            return

        try:
            pyfs.tools.remove_empty(self.fs, path)
        except pyfs.errors.ResourceNotFound:
            # Guard against paths that don't exist in the FS.
            return None

    def _makedirs(self, dir_path):
        """Physically create the folder path."""
        if not dir_path:
            return

        try:
            # this is creating a directory, so we use dmode here.
            perms = Permissions.create(self.dmode)
            self.fs.makedirs(dir_path, permissions=perms, recreate=True)

        except pyfs.errors.DirectoryExpected:
            assert self.fs.isdir(
                dir_path), f"expected {dir_path} to be a directory"

    def _token_to_path(self, token: str, extension: Optional[str] = "") -> str:
        """Build the relative file path for a given token. Optionally, append a
    file extension.

    """
        paths = u.shard(token, self.depth, self.width)

        if extension and not extension.startswith(os.extsep):
            extension = os.extsep + extension
        elif not extension:
            extension = ""

        return pyfs.path.join(*paths) + extension
