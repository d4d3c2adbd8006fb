from __future__ import annotations

ENVIRONMENT_FAILURE = "environment"
OPERATION_FAILURE = "operation"


class BackupStageError(RuntimeError):
    def __init__(self, *, stage: str, reason: str, kind: str = OPERATION_FAILURE) -> None:
        normalized_reason = reason.strip() or "unknown error"
        super().__init__(f"{stage} stage failed: {normalized_reason}")
        self.stage = stage
        self.kind = kind


class ConfigError(ValueError):
    """Raised when a configuration value cannot be interpreted."""


def error_message(error: Exception) -> str:
    message = str(error).strip()
    return message or error.__class__.__name__
