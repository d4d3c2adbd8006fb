from __future__ import annotations

from pathlib import Path
import logging
import os
import platform
import tempfile

import requests

from .config import BackupConfig
from .errors import ENVIRONMENT_FAILURE, BackupStageError, error_message
from .models import BackupArtifact
from .runner import CommandRunner

logger = logging.getLogger(__name__)

MC = "mc"
MC_ALIAS = "myminio"
MC_API_VERSION = "S3v4"
MC_DOWNLOAD_URL = "https://dl.min.io/client/mc/release/{platform}/mc"

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}


class MinioUploader:
    """Ships compressed backups to a MinIO bucket through the ``mc`` client."""

    def __init__(
        self,
        *,
        config: BackupConfig,
        runner: CommandRunner,
        session: requests.Session | None = None,
        download_dir: Path | None = None,
    ) -> None:
        self.config = config
        self.runner = runner
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.download_dir = download_dir or Path(tempfile.gettempdir())
        self._mc_command: str | None = None
        self._downloaded_client: Path | None = None

    @property
    def bucket_target(self) -> str:
        return f"{MC_ALIAS}/{self.config.minio_bucket}"

    def upload(self, artifact: BackupArtifact) -> str:
        logger.info("Uploading backup to MinIO...")
        mc_command = self._resolve_client()
        self._configure_alias(mc_command)
        self._ensure_bucket(mc_command)

        remote_path = f"{self.bucket_target}/{artifact.object_name}"
        result = self.runner.execute(
            mc_command,
            ["cp", str(artifact.compressed_path), remote_path],
            env=self.config.subprocess_env,
        )
        if not result.ok:
            raise BackupStageError(
                stage="upload",
                reason=f"Failed to upload backup to MinIO: {result.failure_reason('mc cp failed')}",
            )

        remote_reference = f"{self.config.minio_bucket}/{artifact.object_name}"
        logger.info("Backup successfully uploaded to MinIO: %s", remote_reference)
        return remote_reference

    def prune_remote(self) -> bool:
        """Remove objects older than the retention window. Failures are only logged."""
        if not self.config.retention_enabled or self._mc_command is None:
            return False

        days = self.config.retention_days
        logger.info("Cleaning up backups older than %s days from MinIO...", days)
        try:
            result = self.runner.execute(
                self._mc_command,
                ["rm", "--recursive", "--force", "--older-than", f"{days}d", f"{self.bucket_target}/"],
                env=self.config.subprocess_env,
            )
        except Exception as error:  # pylint: disable=broad-except
            logger.warning("Remote cleanup failed: %s", error_message(error))
            return False

        if not result.ok:
            logger.warning("Remote cleanup failed: %s", result.failure_reason("mc rm failed"))
            return False
        return True

    def close(self) -> None:
        if self._downloaded_client is not None:
            self._downloaded_client.unlink(missing_ok=True)
            self._downloaded_client = None
        self._mc_command = None
        if self._owns_session:
            self.session.close()

    def _resolve_client(self) -> str:
        if self._mc_command is not None:
            return self._mc_command

        if self.runner.which(MC) is not None:
            self._mc_command = MC
            return MC

        logger.warning("MinIO client (mc) is not installed. Installing...")
        target = self.download_dir / MC
        self._download_client(target)
        self._downloaded_client = target
        self._mc_command = str(target)
        return self._mc_command

    def _download_client(self, target: Path) -> None:
        url = client_download_url()
        try:
            with self.session.get(url, stream=True) as response:
                response.raise_for_status()
                with target.open("wb") as file_handle:
                    for chunk in response.iter_content(chunk_size=64 * 1024):
                        file_handle.write(chunk)
            os.chmod(target, 0o755)
        except (requests.RequestException, OSError) as error:
            target.unlink(missing_ok=True)
            raise BackupStageError(
                stage="upload",
                reason=f"unable to download mc from {url}: {error_message(error)}",
                kind=ENVIRONMENT_FAILURE,
            ) from error

    def _configure_alias(self, mc_command: str) -> None:
        logger.info("Configuring MinIO connection...")
        result = self.runner.execute(
            mc_command,
            [
                "alias",
                "set",
                MC_ALIAS,
                self.config.minio_url,
                self.config.minio_access_key,
                self.config.minio_secret_key,
                "--api",
                MC_API_VERSION,
            ],
            env=self.config.subprocess_env,
        )
        if not result.ok:
            raise BackupStageError(stage="upload", reason=result.failure_reason("mc alias set failed"))

    def _ensure_bucket(self, mc_command: str) -> None:
        logger.info("Ensuring bucket '%s' exists...", self.config.minio_bucket)
        result = self.runner.execute(
            mc_command,
            ["mb", self.bucket_target, "--ignore-existing"],
            env=self.config.subprocess_env,
        )
        if not result.ok:
            raise BackupStageError(stage="upload", reason=result.failure_reason("mc mb failed"))


def detect_platform(system: str | None = None, machine: str | None = None) -> str:
    os_name = (system if system is not None else platform.system()).lower()
    raw_arch = machine if machine is not None else platform.machine()
    arch = _ARCH_ALIASES.get(raw_arch, raw_arch)
    return f"{os_name}-{arch}"


def client_download_url(system: str | None = None, machine: str | None = None) -> str:
    return MC_DOWNLOAD_URL.format(platform=detect_platform(system, machine))
