# -*- coding: utf-8 -*-

import pytest
from pydantic import ValidationError

from hashvault import Settings
from hashvault.config import DEFAULT_MAX_PAYLOAD_BYTES


@pytest.fixture
def settings_env(monkeypatch, tmpdir):
    # Keep a stray .env in the working directory out of the way.
    monkeypatch.chdir(tmpdir)
    for name in ("STORAGE_URL", "DATABASE_URL", "MAX_PAYLOAD_BYTES", "ALGORITHM"):
        monkeypatch.delenv("HASHVAULT_" + name, raising=False)
    return monkeypatch


def test_settings_defaults(settings_env):
    settings = Settings()

    assert settings.storage_url == "./data/blobs"
    assert settings.database_url == "sqlite:///./data/index.db"
    assert settings.max_payload_bytes == DEFAULT_MAX_PAYLOAD_BYTES == 10 * 1024 * 1024
    assert settings.algorithm == "sha256"
    assert settings.depth == 2
    assert settings.width == 2


def test_settings_env(settings_env):
    settings_env.setenv("HASHVAULT_MAX_PAYLOAD_BYTES", "2048")
    settings_env.setenv("HASHVAULT_ALGORITHM", "sha512")
    settings_env.setenv("HASHVAULT_STORAGE_URL", "mem://")

    settings = Settings()

    assert settings.max_payload_bytes == 2048
    assert settings.algorithm == "sha512"
    assert settings.storage_url == "mem://"


def test_settings_env_file(settings_env, tmpdir):
    tmpdir.join(".env").write("HASHVAULT_DATABASE_URL=sqlite://\n")

    assert Settings().database_url == "sqlite://"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"algorithm": "md5"},
        {"algorithm": "not-a-hash"},
        {"max_payload_bytes": 0},
        {"max_payload_bytes": -1},
        {"width": 0},
    ],
)
def test_settings_invalid(settings_env, kwargs):
    with pytest.raises(ValidationError):
        Settings(**kwargs)
