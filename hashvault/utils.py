# -*- coding: utf-8 -*-


"""
common utils for hashvault
"""


import mimetypes
import os
from datetime import datetime, timezone
from typing import List, Union

import fs as pyfs
from fs.base import FS

from .exceptions import InvalidInput, TooLarge

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def compact(items):
    """Return only truthy elements of `items`."""
    return [item for item in items if item]


def shard(token, depth, width) -> List[str]:
    # This creates a list of `depth` number of tokens with width
    # `width` from the first part of the token plus the remainder.
    return compact(
        [token[i * width : width * (i + 1)] for i in range(depth)]
        + [token[depth * width :]]
    )


def load_fs(root: Union[FS, str]) -> FS:
    """Return `root` if it is already a filesystem, else open it as an FS URL
    or local path, creating it when missing.
    """
    if isinstance(root, FS):
        return root
    return pyfs.open_fs(root, create=True)


def to_bytes(text) -> bytes:
    if isinstance(text, (bytearray, memoryview)):
        return bytes(text)
    if not isinstance(text, bytes):
        text = bytes(text, "utf8")
    return text


def read_payload(obj, limit: int) -> bytes:
    """Return the full content of `obj` as bytes.

    `obj` may be bytes-like, text or a readable binary object. Size is checked
    against `limit` before the caller ever hashes the content; readable objects
    are read until exhausted, but never more than ``limit + 1`` bytes in
    total, so oversized streams are never fully buffered. Short reads are
    retried.

    Raises:
        InvalidInput: If `obj` is missing or empty.
        TooLarge: If `obj` is longer than `limit` bytes.
    """
    if obj is None:
        raise InvalidInput("No payload supplied")

    if hasattr(obj, "read"):
        chunks = []
        size = 0
        while size <= limit:
            chunk = obj.read(limit + 1 - size)
            if not chunk:
                break
            chunk = to_bytes(chunk)
            chunks.append(chunk)
            size += len(chunk)

        data = b"".join(chunks)
        if len(data) > limit:
            raise TooLarge(len(data), limit)
    elif isinstance(obj, (bytes, bytearray, memoryview, str)):
        data = to_bytes(obj)
        if len(data) > limit:
            raise TooLarge(len(data), limit)
    else:
        raise InvalidInput(
            "Payload must be bytes, text or a readable object, not {0}".format(
                type(obj).__name__
            )
        )

    if not data:
        raise InvalidInput("Payload is empty")

    return data


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def clean_filename(filename) -> str:
    """Reduce a client-supplied name to its base name, or ``unnamed``."""
    name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1].strip()
    return name or "unnamed"


def extension(filename: str) -> str:
    """Return the extension of `filename` if it is short and alphanumeric."""
    ext = os.path.splitext(filename)[1]
    if 1 < len(ext) <= 16 and ext[1:].isalnum():
        return ext.lower()
    return ""


def guess_type(filename: str) -> str:
    return mimetypes.guess_type(filename)[0] or DEFAULT_CONTENT_TYPE
