from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Sequence
import gzip
import shutil

import pytest

from exchange_db_backup.config import BackupConfig
from exchange_db_backup.runner import CommandResult

DUMP_BYTES = b"-- PostgreSQL database dump\nCREATE TABLE orders (id integer);\n"


@dataclass(frozen=True)
class RecordedCall:
    name: str
    args: tuple[str, ...]
    env: dict[str, str]

    @property
    def key(self) -> str:
        return _command_key(self.name, self.args)


@dataclass
class FakeCommandRunner:
    """Stands in for pg_dump, gzip and mc while recording every invocation."""

    available: set[str] = field(default_factory=lambda: {"pg_dump", "gzip", "mc"})
    failures: dict[str, CommandResult] = field(default_factory=dict)
    errors: dict[str, Exception] = field(default_factory=dict)
    dump_bytes: bytes = DUMP_BYTES
    calls: list[RecordedCall] = field(default_factory=list)
    bucket: dict[str, bytes] = field(default_factory=dict)

    def which(self, name: str) -> str | None:
        return f"/usr/bin/{name}" if name in self.available else None

    def execute(
        self,
        name: str,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        call = RecordedCall(name=name, args=tuple(args), env=dict(env or {}))
        self.calls.append(call)

        if call.key in self.errors:
            raise self.errors[call.key]
        if call.key in self.failures:
            return self.failures[call.key]

        if call.key == "pg_dump":
            Path(args[args.index("-f") + 1]).write_bytes(self.dump_bytes)
        elif call.key == "gzip":
            source = Path(args[0])
            with source.open("rb") as raw, gzip.open(f"{source}.gz", "wb") as compressed:
                shutil.copyfileobj(raw, compressed)
            source.unlink()
        elif call.key == "mc cp":
            self.bucket[args[2].rsplit("/", 1)[-1]] = Path(args[1]).read_bytes()
        return CommandResult(exit_code=0)

    def keys(self) -> list[str]:
        return [call.key for call in self.calls]

    def calls_for(self, key: str) -> list[RecordedCall]:
        return [call for call in self.calls if call.key == key]


def _command_key(name: str, args: Sequence[str]) -> str:
    base = Path(name).name
    if base == "mc" and args:
        return f"mc {args[0]}"
    return base


@pytest.fixture
def fake_runner() -> FakeCommandRunner:
    return FakeCommandRunner()


@pytest.fixture
def backup_config(tmp_path: Path) -> BackupConfig:
    return BackupConfig(backup_dir=tmp_path / "backups")
