# -*- coding: utf-8 -*-

import pytest

from hashvault.digest import check_algorithm, digest


HELLO_SHA256 = "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"


def test_digest_hello():
    assert digest(b"hello") == HELLO_SHA256


@pytest.mark.parametrize("content", [b"", b"a", b"hello", bytes(range(256)) * 64])
def test_digest_deterministic(content):
    assert digest(content) == digest(content)
    assert digest(bytearray(content)) == digest(content)
    assert digest(memoryview(content)) == digest(content)


def test_digest_chunks():
    assert digest([b"he", b"ll", b"o"]) == HELLO_SHA256
    assert digest(iter([b"hello"])) == HELLO_SHA256


def test_digest_distinct():
    assert digest(b"hello") != digest(b"hello ")


def test_digest_algorithm():
    value = digest(b"hello", "sha512")

    assert len(value) == 128
    assert value != HELLO_SHA256


@pytest.mark.parametrize("algorithm", ["sha256", "sha512", "sha3_256"])
def test_check_algorithm(algorithm):
    assert check_algorithm(algorithm) == algorithm


@pytest.mark.parametrize("algorithm", ["md5", "sha1", "not-a-hash"])
def test_check_algorithm_error(algorithm):
    with pytest.raises(ValueError):
        check_algorithm(algorithm)
