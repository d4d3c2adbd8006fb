from __future__ import annotations

import os
import shutil
import subprocess

import pytest

_ENV_RUN_FLAG = "EDB_RUN_POSTGRES_INTEGRATION"
_REQUIRED_BINARIES = ("pg_dump", "gzip", "pg_isready")


def _flag_enabled(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _verify_prerequisites() -> None:
    if not _flag_enabled(os.getenv(_ENV_RUN_FLAG)):
        pytest.skip(
            "PostgreSQL integration tests are disabled by default. "
            f"Set {_ENV_RUN_FLAG}=1 to run them.",
            allow_module_level=True,
        )

    missing = [binary for binary in _REQUIRED_BINARIES if shutil.which(binary) is None]
    if missing:
        missing_rendered = ", ".join(sorted(missing))
        pytest.skip(
            f"PostgreSQL integration prerequisites are missing: {missing_rendered}.",
            allow_module_level=True,
        )

    ready = subprocess.run(
        [
            "pg_isready",
            "-h",
            os.getenv("DATABASE_HOST", "localhost"),
            "-p",
            os.getenv("DATABASE_PORT", "5432"),
        ],
        check=False,
        capture_output=True,
        text=True,
        timeout=30,
    )
    if ready.returncode != 0:
        detail = ready.stdout.strip() or ready.stderr.strip() or "no response"
        pytest.skip(
            f"PostgreSQL is not reachable for integration tests: {detail}.",
            allow_module_level=True,
        )


@pytest.fixture(scope="session", autouse=True)
def postgres_prerequisites() -> None:
    _verify_prerequisites()
