from __future__ import annotations

from pathlib import Path
import logging
import time

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def prune_local_backups(
    backup_dir: Path,
    *,
    pattern: str,
    retention_days: int,
    now: float | None = None,
) -> list[Path]:
    """Delete artifacts older than ``retention_days`` whole days from ``backup_dir``.

    Nested directories are searched as well.
    Age is counted in complete days with the fractional part discarded, so a
    file is removed only once it is at least ``retention_days + 1`` days old.
    Filesystem errors are not suppressed.
    """
    if retention_days <= 0:
        return []

    logger.info("Cleaning up local backups older than %s days...", retention_days)
    reference = time.time() if now is None else now
    removed: list[Path] = []
    for candidate in sorted(backup_dir.rglob(pattern)):
        if not candidate.is_file():
            continue
        if age_in_days(candidate, now=reference) > retention_days:
            candidate.unlink()
            logger.info("Removed old local backup: %s", candidate.name)
            removed.append(candidate)
    return removed


def age_in_days(path: Path, *, now: float) -> int:
    return int((now - path.stat().st_mtime) // SECONDS_PER_DAY)
