# conftest.py - Shared pytest fixtures for all tests
"""Shared pytest fixtures for the migrunner test suite.

This module provides foundational fixtures used across all test modules:
- Runnable units backed by short Python child processes
- A fast-polling configuration and a silent console
- Temporary folders laid out like .NET solutions with DbMigrator projects

Usage:
    Import fixtures implicitly via pytest's fixture discovery.
    All fixtures in this file are automatically available in test modules.
"""

from __future__ import annotations

import io
import sys
import time
from collections.abc import Callable
from pathlib import Path

import psutil
import pytest
from rich.console import Console

from migrunner.core.config import MigrunnerConfig
from migrunner.core.models import RunnableUnit

# Child scripts are run with -u so every print reaches the pipe immediately
SLEEP_FOREVER = "import time; time.sleep(60)"
EXIT_IMMEDIATELY = "pass"


# =============================================================================
# Process Fixtures
# =============================================================================


@pytest.fixture
def python_unit(tmp_path: Path) -> Callable[..., RunnableUnit]:
    """Factory for RunnableUnits that run a Python snippet.

    Returns:
        Callable taking (name, script) and returning a RunnableUnit whose
        command is ``python -u -c <script>`` in a temporary directory.

    Example:
        def test_something(python_unit):
            unit = python_unit("hello", "print('[t] hi')")
    """

    def _make(name: str, script: str) -> RunnableUnit:
        return RunnableUnit(
            name=name,
            working_directory=tmp_path,
            command=(sys.executable, "-u", "-c", script),
        )

    return _make


@pytest.fixture
def fast_config() -> MigrunnerConfig:
    """Configuration with short timeouts so tests finish quickly."""
    return MigrunnerConfig(
        poll_interval=0.02,
        termination_timeout=5.0,
        output_drain_timeout=1.0,
    )


@pytest.fixture
def quiet_console() -> Console:
    """Console writing to an in-memory buffer (read via ``console.file.getvalue()``)."""
    return Console(file=io.StringIO(), width=120, force_terminal=False)


def pid_is_gone(pid: int, timeout: float = 5.0) -> bool:
    """Wait until pid no longer runs. Zombies awaiting a reaper count as gone."""
    deadline = time.monotonic() + timeout
    while True:
        try:
            if psutil.Process(pid).status() == psutil.STATUS_ZOMBIE:
                return True
        except psutil.NoSuchProcess:
            return True
        if time.monotonic() >= deadline:
            return False
        time.sleep(0.05)


def wait_until(predicate: Callable[[], bool], timeout: float = 10.0) -> bool:
    """Poll predicate until it is true or the timeout elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


# =============================================================================
# Solution Layout Fixtures
# =============================================================================


@pytest.fixture
def solution_dir(tmp_path: Path) -> Path:
    """Create a folder shaped like a .NET solution.

    Creates:
        - src/Acme.DbMigrator/Acme.DbMigrator.csproj
        - src/Billing.DbMigrator/Billing.DbMigrator.csproj
        - src/Acme.Web/Acme.Web.csproj (not a migrator)
        - src/Acme.DbMigrator/bin/Debug/Copy.DbMigrator.csproj (build output, skipped)

    Returns:
        Path to the solution root.
    """
    root = tmp_path / "solution"
    projects = [
        "src/Acme.DbMigrator/Acme.DbMigrator.csproj",
        "src/Billing.DbMigrator/Billing.DbMigrator.csproj",
        "src/Acme.Web/Acme.Web.csproj",
        "src/Acme.DbMigrator/bin/Debug/Copy.DbMigrator.csproj",
    ]
    for project in projects:
        path = root / project
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("<Project Sdk=\"Microsoft.NET.Sdk\" />\n")
    return root
