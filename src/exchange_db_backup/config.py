from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping
import logging
import os

from dotenv import dotenv_values

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path(".env")

DEFAULTS: dict[str, str] = {
    "DATABASE_HOST": "localhost",
    "DATABASE_PORT": "5432",
    "DATABASE_NAME": "exchange",
    "DATABASE_USER": "exchange",
    "DATABASE_PASSWORD": "exchange",
    "MINIO_ENDPOINT": "localhost:9000",
    "MINIO_ACCESS_KEY": "",
    "MINIO_SECRET_KEY": "",
    "MINIO_USE_SSL": "false",
    "MINIO_BUCKET": "database-backups",
    "BACKUP_DIR": "./backups",
    "RETENTION_DAYS": "30",
    "BACKUP_PREFIX": "exchange_backup",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class BackupConfig:
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "exchange"
    database_user: str = "exchange"
    database_password: str = "exchange"
    minio_endpoint: str = "localhost:9000"
    minio_access_key: str = ""
    minio_secret_key: str = ""
    minio_use_ssl: bool = False
    minio_bucket: str = "database-backups"
    backup_dir: Path = Path("./backups")
    retention_days: int = 30
    backup_prefix: str = "exchange_backup"
    subprocess_env: dict[str, str] = field(default_factory=dict)

    @property
    def upload_enabled(self) -> bool:
        return bool(self.minio_access_key) and bool(self.minio_secret_key)

    @property
    def retention_enabled(self) -> bool:
        return self.retention_days > 0

    @property
    def minio_url(self) -> str:
        protocol = "https" if self.minio_use_ssl else "http"
        return f"{protocol}://{self.minio_endpoint}"

    @property
    def local_pattern(self) -> str:
        return f"{self.backup_prefix}_*.sql.gz"


def read_settings_file(path: Path | str) -> dict[str, str]:
    settings_path = Path(path)
    if not settings_path.is_file():
        return {}

    values = dotenv_values(settings_path)
    return {key: value for key, value in values.items() if value is not None}


def load_config(
    environ: Mapping[str, str] | None = None,
    settings_path: Path | str | None = DEFAULT_SETTINGS_PATH,
) -> BackupConfig:
    """Resolve the run configuration.

    Values are layered: built-in defaults, then the optional settings file,
    then the process environment. A key set to a non-empty value in the
    environment wins over the settings file; empty values count as unset.
    Settings-file entries the environment does not already provide are kept
    in ``subprocess_env`` and handed to every external tool.
    """
    environment = os.environ if environ is None else environ

    file_values: dict[str, str] = {}
    if settings_path is not None:
        file_values = read_settings_file(settings_path)
        if file_values:
            logger.info("Loading configuration from %s file...", settings_path)

    resolved: dict[str, str] = {}
    for key, default in DEFAULTS.items():
        if environment.get(key):
            resolved[key] = environment[key]
        elif file_values.get(key):
            resolved[key] = file_values[key]
        else:
            resolved[key] = default

    return BackupConfig(
        database_host=resolved["DATABASE_HOST"],
        database_port=_parse_int("DATABASE_PORT", resolved["DATABASE_PORT"]),
        database_name=resolved["DATABASE_NAME"],
        database_user=resolved["DATABASE_USER"],
        database_password=resolved["DATABASE_PASSWORD"],
        minio_endpoint=resolved["MINIO_ENDPOINT"],
        minio_access_key=resolved["MINIO_ACCESS_KEY"],
        minio_secret_key=resolved["MINIO_SECRET_KEY"],
        minio_use_ssl=_parse_flag(resolved["MINIO_USE_SSL"]),
        minio_bucket=resolved["MINIO_BUCKET"],
        backup_dir=Path(resolved["BACKUP_DIR"]),
        retention_days=_parse_int("RETENTION_DAYS", resolved["RETENTION_DAYS"]),
        backup_prefix=resolved["BACKUP_PREFIX"],
        subprocess_env={key: value for key, value in file_values.items() if not environment.get(key)},
    )


def ensure_directories(config: BackupConfig) -> None:
    config.backup_dir.mkdir(parents=True, exist_ok=True)


def _parse_int(key: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError as error:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from error


def _parse_flag(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES
