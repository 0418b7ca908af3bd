from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from tempfile import gettempdir

from dotenv import load_dotenv


def _load_repo_env() -> None:
    """Load the nearest .env starting from this file upward."""
    current = Path(__file__).resolve()
    for candidate in [current.parent, *current.parents]:
        env_file = candidate / ".env"
        if env_file.exists():
            load_dotenv(env_file)
            return


_load_repo_env()

DEFAULT_SUPPORTED_CONTENT_TYPES = (
    # Documents
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
    # Presentations
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "application/vnd.ms-powerpoint",
    # Spreadsheets
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
    "text/csv",
    # Plain text
    "text/plain",
)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class UploadConfig:
    redis_host: str
    redis_port: int
    redis_db: int
    session_ttl_seconds: int
    staging_dir: str
    artifact_dir: str
    chunk_endpoint: str
    max_file_size_bytes: int
    supported_content_types: tuple[str, ...]
    storage_endpoint_url: str | None
    storage_region: str
    storage_access_key: str | None
    storage_secret_key: str | None
    storage_bucket: str | None
    storage_object_prefix: str
    auto_assemble: bool
    queue_name: str
    assembly_lock_seconds: int
    events_channel: str | None
    sweep_grace_seconds: int
    sweep_interval_seconds: int

    @property
    def uses_object_storage(self) -> bool:
        return bool(self.storage_bucket)


def load_config() -> UploadConfig:
    tmp_root = Path(gettempdir())
    return UploadConfig(
        redis_host=os.getenv("UPLOAD_REDIS_HOST", "localhost"),
        redis_port=_env_int("UPLOAD_REDIS_PORT", 6379),
        redis_db=_env_int("UPLOAD_REDIS_DB", 0),
        session_ttl_seconds=_env_int("UPLOAD_SESSION_TTL_SECONDS", 86400),
        staging_dir=os.getenv(
            "UPLOAD_STAGING_DIR", (tmp_root / "upload-staging").as_posix()
        ),
        artifact_dir=os.getenv(
            "UPLOAD_ARTIFACT_DIR", (tmp_root / "upload-artifacts").as_posix()
        ),
        chunk_endpoint=os.getenv("UPLOAD_CHUNK_ENDPOINT", "/api/upload/chunk"),
        max_file_size_bytes=_env_int("UPLOAD_MAX_FILE_SIZE_BYTES", 100 * 1024 * 1024),
        supported_content_types=_env_list(
            "UPLOAD_SUPPORTED_CONTENT_TYPES", DEFAULT_SUPPORTED_CONTENT_TYPES
        ),
        storage_endpoint_url=os.getenv("UPLOAD_STORAGE_ENDPOINT_URL") or None,
        storage_region=os.getenv("UPLOAD_STORAGE_REGION", "us-east-1"),
        storage_access_key=os.getenv("UPLOAD_STORAGE_ACCESS_KEY") or None,
        storage_secret_key=os.getenv("UPLOAD_STORAGE_SECRET_KEY") or None,
        storage_bucket=os.getenv("UPLOAD_STORAGE_BUCKET") or None,
        storage_object_prefix=os.getenv("UPLOAD_STORAGE_OBJECT_PREFIX", "uploads"),
        auto_assemble=_env_bool("UPLOAD_AUTO_ASSEMBLE", False),
        queue_name=os.getenv("UPLOAD_QUEUE_NAME", "assembly"),
        assembly_lock_seconds=_env_int("UPLOAD_ASSEMBLY_LOCK_SECONDS", 900),
        events_channel=os.getenv("UPLOAD_EVENTS_CHANNEL") or None,
        sweep_grace_seconds=_env_int("UPLOAD_SWEEP_GRACE_SECONDS", 3600),
        sweep_interval_seconds=_env_int("UPLOAD_SWEEP_INTERVAL_SECONDS", 0),
    )
