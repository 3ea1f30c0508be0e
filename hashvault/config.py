"""Deployment configuration from environment variables."""
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .digest import DEFAULT_ALGORITHM, check_algorithm

#: 10 MiB.
DEFAULT_MAX_PAYLOAD_BYTES = 10 * 1024 * 1024


class Settings(BaseSettings):
    """All config comes from ``HASHVAULT_*`` env vars or a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_prefix="HASHVAULT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # FS URL or local directory holding the blobs.
    storage_url: str = "./data/blobs"
    # SQLAlchemy URL of the metadata index.
    database_url: str = "sqlite:///./data/index.db"

    max_payload_bytes: int = Field(DEFAULT_MAX_PAYLOAD_BYTES, gt=0)
    algorithm: str = DEFAULT_ALGORITHM

    # Blob directory sharding.
    depth: int = Field(2, ge=0)
    width: int = Field(2, ge=1)
    dmode: int = 0o755

    @field_validator("algorithm")
    @classmethod
    def _check_algorithm(cls, value: str) -> str:
        return check_algorithm(value)
