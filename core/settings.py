from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

S3_CREDENTIAL_VARS = ("S3_BUCKET_NAME", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")

POSITIVE_INT_VARS = (
    "ANONYMOUS_TTL_HOURS",
    "AUTHENTICATED_TTL_DAYS",
    "CLEANUP_RETENTION_DAYS",
    "MAX_UPLOAD_BYTES",
)


def _split_csv(value: str | None) -> tuple[str, ...]:
    if not value:
        return tuple()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _env(name: str) -> str | None:
    raw_value = os.getenv(name)
    if raw_value is None:
        return None
    normalized = raw_value.strip()
    return normalized or None


def _env_int(name: str, default: int) -> int:
    value = _env(name)
    if value is None:
        return default
    return int(value)


def _env_bool(name: str, default: bool = False) -> bool:
    value = _env(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes"}


def collect_invalid_env_values() -> list[str]:
    invalid_values: list[str] = []

    for var_name in POSITIVE_INT_VARS:
        raw = _env(var_name)
        if raw is None:
            continue
        try:
            if int(raw) <= 0:
                raise ValueError("must be positive")
        except ValueError:
            invalid_values.append(f"{var_name} must be a positive integer")

    interval = _env("CLEANUP_INTERVAL_MINUTES")
    if interval is not None:
        try:
            if int(interval) < 0:
                raise ValueError("must not be negative")
        except ValueError:
            invalid_values.append("CLEANUP_INTERVAL_MINUTES must be a non-negative integer")

    present = [name for name in S3_CREDENTIAL_VARS if _env(name) is not None]
    if present and len(present) != len(S3_CREDENTIAL_VARS):
        missing = ", ".join(name for name in S3_CREDENTIAL_VARS if name not in present)
        invalid_values.append(f"S3 storage is partially configured; missing: {missing}")

    if (_env("MONGO_URL") is None) != (_env("DB_NAME") is None):
        invalid_values.append("MONGO_URL and DB_NAME must be set together")

    return invalid_values


def validate_required_environment() -> None:
    invalid_values = collect_invalid_env_values()
    if not invalid_values:
        return

    message_lines = ["Application startup blocked by invalid environment configuration."]
    message_lines.append("")
    message_lines.append("Invalid environment values:")
    message_lines.extend(f"- {message}" for message in invalid_values)
    raise RuntimeError("\n".join(message_lines))


@dataclass(frozen=True)
class Settings:
    env: str
    log_level: str
    cors_origins: tuple[str, ...]
    debug_include_error_details: bool
    s3_bucket_name: str | None
    s3_access_key_id: str | None
    s3_secret_access_key: str | None
    s3_region: str | None
    s3_endpoint_url: str | None
    s3_public_base_url: str | None
    storage_upload_prefix: str
    mongo_url: str | None
    db_name: str | None
    gridfs_bucket_name: str
    cleanup_data_dir: str
    anonymous_ttl_hours: int
    authenticated_ttl_days: int
    cleanup_retention_days: int
    cleanup_interval_minutes: int
    cron_secret: str | None
    max_upload_bytes: int

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"

    @property
    def s3_configured(self) -> bool:
        return bool(self.s3_bucket_name and self.s3_access_key_id and self.s3_secret_access_key)

    @property
    def gridfs_configured(self) -> bool:
        return bool(self.mongo_url and self.db_name)


def load_settings() -> Settings:
    validate_required_environment()

    return Settings(
        env=os.getenv("ENV", "development"),
        log_level=(_env("LOG_LEVEL") or "INFO").upper(),
        cors_origins=_split_csv(os.getenv("CORS_ORIGINS")),
        debug_include_error_details=_env_bool("DEBUG_INCLUDE_ERROR_DETAILS"),
        s3_bucket_name=_env("S3_BUCKET_NAME"),
        s3_access_key_id=_env("S3_ACCESS_KEY_ID"),
        s3_secret_access_key=_env("S3_SECRET_ACCESS_KEY"),
        s3_region=_env("S3_REGION"),
        s3_endpoint_url=_env("S3_ENDPOINT_URL"),
        s3_public_base_url=_env("S3_PUBLIC_BASE_URL"),
        storage_upload_prefix=_env("STORAGE_UPLOAD_PREFIX") or "paper-uploads",
        mongo_url=_env("MONGO_URL"),
        db_name=_env("DB_NAME"),
        gridfs_bucket_name=_env("GRIDFS_BUCKET_NAME") or "uploads",
        cleanup_data_dir=_env("CLEANUP_DATA_DIR") or "data",
        anonymous_ttl_hours=_env_int("ANONYMOUS_TTL_HOURS", 48),
        authenticated_ttl_days=_env_int("AUTHENTICATED_TTL_DAYS", 365),
        cleanup_retention_days=_env_int("CLEANUP_RETENTION_DAYS", 30),
        cleanup_interval_minutes=_env_int("CLEANUP_INTERVAL_MINUTES", 60),
        cron_secret=_env("CRON_SECRET"),
        max_upload_bytes=_env_int("MAX_UPLOAD_BYTES", 50 * 1024 * 1024),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
