from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
import gzip

import pytest

from exchange_db_backup.compress import compress_artifact, format_size
from exchange_db_backup.config import BackupConfig
from exchange_db_backup.dump import build_artifact
from exchange_db_backup.errors import ENVIRONMENT_FAILURE, BackupStageError
from exchange_db_backup.models import BackupArtifact
from exchange_db_backup.runner import CommandResult

if TYPE_CHECKING:
    from .conftest import FakeCommandRunner

PAYLOAD = b"CREATE TABLE trades (id integer);\n" * 8


def _dumped_artifact(config: BackupConfig) -> BackupArtifact:
    artifact = build_artifact(config, datetime(2026, 2, 1, 3, 0, 0))
    config.backup_dir.mkdir(parents=True, exist_ok=True)
    artifact.dump_path.write_bytes(PAYLOAD)
    return artifact


def test_compress_artifact_replaces_dump_with_gzip_sibling(
    backup_config: BackupConfig,
    fake_runner: FakeCommandRunner,
) -> None:
    artifact = _dumped_artifact(backup_config)

    size = compress_artifact(artifact, fake_runner)

    assert not artifact.dump_path.exists()
    assert gzip.decompress(artifact.compressed_path.read_bytes()) == PAYLOAD
    assert size.endswith("B")
    assert fake_runner.calls_for("gzip")[0].args == (str(artifact.dump_path),)


def test_compress_artifact_with_gzip_failure_raises_and_keeps_dump(
    backup_config: BackupConfig,
    fake_runner: FakeCommandRunner,
) -> None:
    artifact = _dumped_artifact(backup_config)
    fake_runner.failures["gzip"] = CommandResult(exit_code=1, stderr="gzip: No space left on device")

    with pytest.raises(BackupStageError, match="compress stage failed: gzip: No space left on device"):
        compress_artifact(artifact, fake_runner)

    assert artifact.dump_path.exists()


def test_compress_artifact_with_missing_gzip_raises_environment_failure(
    backup_config: BackupConfig,
    fake_runner: FakeCommandRunner,
) -> None:
    artifact = _dumped_artifact(backup_config)
    fake_runner.available = {"pg_dump"}

    with pytest.raises(BackupStageError) as error_info:
        compress_artifact(artifact, fake_runner)

    assert error_info.value.kind == ENVIRONMENT_FAILURE


@pytest.mark.parametrize(
    ("num_bytes", "expected"),
    [
        (0, "0B"),
        (1023, "1023B"),
        (1536, "1.5K"),
        (40 * 1024, "40K"),
        (12 * 1024 * 1024, "12M"),
        (3 * 1024**3, "3.0G"),
    ],
)
def test_format_size_matches_du_style_units(num_bytes: int, expected: str) -> None:
    assert format_size(num_bytes) == expected
