# -*- coding: utf-8 -*-
"""Exceptions raised by hashvault.

Every error derives from :class:`HashVaultError` so callers can catch the
whole family in one clause. Each one also subclasses the builtin exception
closest in meaning so code written against plain Python errors still works.
"""


class HashVaultError(Exception):
    """Base class for all hashvault errors."""


class InvalidInput(HashVaultError, ValueError):
    """Payload or arguments are missing or malformed."""


class TooLarge(InvalidInput):
    """Payload exceeds the configured maximum size."""

    def __init__(self, size, limit):
        self.size = size
        self.limit = limit
        super().__init__(
            "Payload of {0} bytes exceeds limit of {1} bytes".format(size, limit)
        )


class Conflict(HashVaultError):
    """A record with the same id, fingerprint or storage ref is already live."""


class NotFound(HashVaultError, LookupError):
    """Record or blob does not exist."""


class StorageFailure(HashVaultError, IOError):
    """The blob store or metadata index failed to persist or read data."""


class StorageInconsistency(StorageFailure):
    """A live record points at a blob that is missing."""
