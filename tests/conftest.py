# -*- coding: utf-8 -*-

from datetime import datetime, timedelta, timezone
from io import BytesIO, RawIOBase

import pytest
from fs.memoryfs import MemoryFS

import hashvault


class Clock(object):
    """Clock that moves one second forward on every reading."""

    def __init__(self):
        self.now = datetime.now(timezone.utc)

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


class Trickle(RawIOBase):
    """Raw reader that returns at most `step` bytes per read."""

    def __init__(self, data, step=3):
        self.stream = BytesIO(data)
        self.step = step

    def readable(self):
        return True

    def readinto(self, buffer):
        chunk = self.stream.read(min(len(buffer), self.step))
        buffer[: len(chunk)] = chunk
        return len(chunk)


@pytest.fixture
def testpath(tmpdir):
    return tmpdir.mkdir("hashvault")


@pytest.fixture(params=["memfs", "osfs"])
def blobs(request, testpath):
    if request.param == "memfs":
        return hashvault.BlobStore(MemoryFS())
    return hashvault.BlobStore(str(testpath.join("blobs")))


@pytest.fixture
def index():
    return hashvault.MetadataIndex.from_url("sqlite://")


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def vault(blobs, index, clock):
    return hashvault.HashVault(blobs, index, max_payload_bytes=1024, clock=clock)


@pytest.fixture
def trickle():
    return Trickle
