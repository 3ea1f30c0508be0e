# -*- coding: utf-8 -*-
"""Content fingerprints."""

import hashlib
from typing import Iterable, Union

from .utils import to_bytes

DEFAULT_ALGORITHM = "sha256"

#: Shortest digest, in bytes, accepted as a dedup key.
MIN_DIGEST_SIZE = 32


def check_algorithm(algorithm: str) -> str:
    """Return `algorithm` if ``hashlib`` provides it with a digest of at least
    256 bits, else raise ``ValueError``.
    """
    if algorithm not in hashlib.algorithms_available:
        raise ValueError("Unknown hash algorithm: {0!r}".format(algorithm))

    if hashlib.new(algorithm).digest_size < MIN_DIGEST_SIZE:
        raise ValueError(
            "Hash algorithm {0!r} is weaker than 256 bits".format(algorithm)
        )

    return algorithm


def hasher(algorithm: str = DEFAULT_ALGORITHM):
    """Return a fresh ``hashlib`` hash object for `algorithm`."""
    return hashlib.new(algorithm)


def digest(
    content: Union[bytes, Iterable[bytes]], algorithm: str = DEFAULT_ALGORITHM
) -> str:
    """Compute the hex fingerprint of `content` using `algorithm`.

    `content` is either a bytes-like object or an iterable of chunks. The
    whole content is consumed before the digest is returned.
    """
    hash = hasher(algorithm)

    if isinstance(content, (bytes, bytearray, memoryview)):
        hash.update(content)
    else:
        for data in content:
            hash.update(to_bytes(data))

    return hash.hexdigest()
