from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

STATUS_SUCCESS = "success"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class BackupArtifact:
    timestamp: str
    dump_path: Path

    @property
    def compressed_path(self) -> Path:
        return self.dump_path.with_name(f"{self.dump_path.name}.gz")

    @property
    def object_name(self) -> str:
        return self.compressed_path.name


@dataclass(frozen=True)
class StageOutcome:
    stage: str
    status: str
    message: str = ""
    error_kind: str | None = None


@dataclass(frozen=True)
class RunReport:
    status: str
    started_at: str
    finished_at: str
    artifact: BackupArtifact | None = None
    artifact_size: str | None = None
    outcomes: tuple[StageOutcome, ...] = field(default_factory=tuple)
    message: str = ""

    @property
    def exit_code(self) -> int:
        return 0 if self.status == STATUS_SUCCESS else 1

    def outcome_for(self, stage: str) -> StageOutcome | None:
        return next((outcome for outcome in self.outcomes if outcome.stage == stage), None)
