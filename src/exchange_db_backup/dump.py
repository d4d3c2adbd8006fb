from __future__ import annotations

from datetime import datetime
import logging

from .config import BackupConfig, ensure_directories
from .errors import ENVIRONMENT_FAILURE, BackupStageError, error_message
from .models import BackupArtifact
from .runner import CommandRunner

logger = logging.getLogger(__name__)

PG_DUMP = "pg_dump"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def build_artifact(config: BackupConfig, now: datetime) -> BackupArtifact:
    timestamp = now.strftime(TIMESTAMP_FORMAT)
    dump_path = config.backup_dir / f"{config.backup_prefix}_{timestamp}.sql"
    return BackupArtifact(timestamp=timestamp, dump_path=dump_path)


def require_pg_dump(runner: CommandRunner) -> None:
    if runner.which(PG_DUMP) is None:
        raise BackupStageError(
            stage="dump",
            reason="pg_dump is not installed. Please install PostgreSQL client tools.",
            kind=ENVIRONMENT_FAILURE,
        )


def dump_database(config: BackupConfig, artifact: BackupArtifact, runner: CommandRunner) -> None:
    require_pg_dump(runner)
    try:
        ensure_directories(config)
    except OSError as error:
        raise BackupStageError(stage="dump", reason=error_message(error)) from error

    logger.info(
        "Dumping database %s from %s:%s...",
        config.database_name,
        config.database_host,
        config.database_port,
    )
    result = runner.execute(
        PG_DUMP,
        [
            "-h",
            config.database_host,
            "-p",
            str(config.database_port),
            "-U",
            config.database_user,
            "-d",
            config.database_name,
            "--no-owner",
            "--no-acl",
            "-F",
            "p",
            "-f",
            str(artifact.dump_path),
        ],
        env={**config.subprocess_env, "PGPASSWORD": config.database_password},
    )
    if not result.ok:
        raise BackupStageError(stage="dump", reason=result.failure_reason("pg_dump exited with an error"))

    logger.info("Database dump completed: %s", artifact.dump_path)
