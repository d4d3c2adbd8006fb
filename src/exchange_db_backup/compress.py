from __future__ import annotations

from pathlib import Path
from typing import Mapping
import logging

from .errors import ENVIRONMENT_FAILURE, BackupStageError
from .models import BackupArtifact
from .runner import CommandRunner

logger = logging.getLogger(__name__)

GZIP = "gzip"
_SIZE_UNITS = ("K", "M", "G", "T", "P")


def compress_artifact(
    artifact: BackupArtifact,
    runner: CommandRunner,
    env: Mapping[str, str] | None = None,
) -> str:
    """Gzip the dump in place and return the compressed size for display."""
    if runner.which(GZIP) is None:
        raise BackupStageError(stage="compress", reason="gzip is not installed", kind=ENVIRONMENT_FAILURE)

    logger.info("Compressing backup...")
    result = runner.execute(GZIP, [str(artifact.dump_path)], env=env)
    if not result.ok:
        raise BackupStageError(stage="compress", reason=result.failure_reason("gzip exited with an error"))

    compressed_path = artifact.compressed_path
    if not compressed_path.is_file():
        raise BackupStageError(stage="compress", reason=f"compressed file not found at {compressed_path}")

    size = file_size(compressed_path)
    logger.info("Backup compressed: %s (%s)", compressed_path, size)
    return size


def file_size(path: Path) -> str:
    return format_size(path.stat().st_size)


def format_size(num_bytes: int) -> str:
    if num_bytes < 1024:
        return f"{num_bytes}B"

    value = float(num_bytes)
    unit = _SIZE_UNITS[0]
    for unit in _SIZE_UNITS:
        value /= 1024
        if value < 1024:
            break

    if value < 10:
        return f"{value:.1f}{unit}"
    return f"{value:.0f}{unit}"
