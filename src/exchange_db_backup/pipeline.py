from __future__ import annotations

from datetime import UTC, datetime
from typing import Callable
import logging

from .compress import compress_artifact
from .config import BackupConfig
from .dump import build_artifact, dump_database
from .errors import BackupStageError, error_message
from .models import (
    STATUS_FAILED,
    STATUS_SKIPPED,
    STATUS_SUCCESS,
    BackupArtifact,
    RunReport,
    StageOutcome,
)
from .retention import prune_local_backups
from .runner import CommandRunner, SubprocessCommandRunner
from .upload import MinioUploader

logger = logging.getLogger(__name__)


class BackupPipeline:
    """Runs one backup: dump, compress, optional upload, then retention.

    Dump, compress, upload and local retention failures end the run as
    failed. Remote retention is best-effort and never changes the outcome.
    """

    def __init__(
        self,
        *,
        config: BackupConfig,
        runner: CommandRunner | None = None,
        uploader: MinioUploader | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config
        self.runner = runner or SubprocessCommandRunner()
        self.uploader = uploader
        self.clock = clock or datetime.now

    def run(self) -> RunReport:
        started_at = _utc_now_iso()
        outcomes: list[StageOutcome] = []
        artifact = build_artifact(self.config, self.clock())
        artifact_size: str | None = None
        status = STATUS_FAILED
        message = ""

        logger.info("Starting database backup...")
        logger.info("Timestamp: %s", artifact.timestamp)

        try:
            dump_database(self.config, artifact, self.runner)
            outcomes.append(StageOutcome(stage="dump", status=STATUS_SUCCESS))

            artifact_size = compress_artifact(artifact, self.runner, env=self.config.subprocess_env)
            outcomes.append(StageOutcome(stage="compress", status=STATUS_SUCCESS, message=artifact_size))

            outcomes.extend(self._upload(artifact))

            outcomes.append(self._prune_local())
            status = STATUS_SUCCESS
        except BackupStageError as error:
            message = str(error)
            outcomes.append(
                StageOutcome(stage=error.stage, status=STATUS_FAILED, message=message, error_kind=error.kind)
            )
            logger.error(message)
        except Exception as error:  # pylint: disable=broad-except
            message = f"unexpected backup failure: {error_message(error)}"
            logger.error(message)

        if status == STATUS_SUCCESS:
            logger.info("Backup completed successfully!")
            logger.info("Backup file: %s (%s)", artifact.compressed_path, artifact_size)

        return RunReport(
            status=status,
            started_at=started_at,
            finished_at=_utc_now_iso(),
            artifact=artifact,
            artifact_size=artifact_size,
            outcomes=tuple(outcomes),
            message=message,
        )

    def _upload(self, artifact: BackupArtifact) -> list[StageOutcome]:
        if not self.config.upload_enabled:
            logger.warning("MinIO credentials not provided. Skipping upload to MinIO.")
            logger.info("Backup saved locally at: %s", artifact.compressed_path)
            return [StageOutcome(stage="upload", status=STATUS_SKIPPED, message="no MinIO credentials")]

        uploader = self.uploader or MinioUploader(config=self.config, runner=self.runner)
        try:
            remote_reference = uploader.upload(artifact)
            outcomes = [StageOutcome(stage="upload", status=STATUS_SUCCESS, message=remote_reference)]
            if self.config.retention_enabled:
                pruned = uploader.prune_remote()
                outcomes.append(
                    StageOutcome(
                        stage="remote_retention",
                        status=STATUS_SUCCESS if pruned else STATUS_FAILED,
                        message="" if pruned else "remote cleanup failed; ignored",
                    )
                )
            else:
                outcomes.append(StageOutcome(stage="remote_retention", status=STATUS_SKIPPED))
            return outcomes
        finally:
            uploader.close()

    def _prune_local(self) -> StageOutcome:
        try:
            removed = prune_local_backups(
                self.config.backup_dir,
                pattern=self.config.local_pattern,
                retention_days=self.config.retention_days,
            )
        except OSError as error:
            raise BackupStageError(stage="retention", reason=error_message(error)) from error

        if not self.config.retention_enabled:
            return StageOutcome(stage="retention", status=STATUS_SKIPPED, message="retention disabled")
        return StageOutcome(stage="retention", status=STATUS_SUCCESS, message=f"removed {len(removed)} file(s)")


def _utc_now_iso() -> str:
    return datetime.now(tz=UTC).replace(microsecond=0).isoformat()
