"""Discovery of DbMigrator projects and the commands that run them."""

import logging
import os
from collections import Counter
from pathlib import Path

from migrunner.core.config import MigrunnerConfig
from migrunner.core.errors import DiscoveryError
from migrunner.core.models import RunnableUnit

logger = logging.getLogger(__name__)


def discover_migrators(root: str | Path, config: MigrunnerConfig | None = None) -> list[Path]:
    """Recursively find migrator project files under root.

    Returns:
        Absolute project paths sorted by path, so discovery order is stable
        between runs.

    Raises:
        DiscoveryError: If root does not exist or is not a directory.
    """
    config = config or MigrunnerConfig()
    root_path = Path(root).absolute()
    if not root_path.is_dir():
        raise DiscoveryError(f"Working directory does not exist: {root_path}")

    excluded = set(config.exclude_dirs)
    found: list[Path] = []

    for dirpath, dirnames, filenames in os.walk(root_path):
        # Prune in place so os.walk skips build output and VCS folders
        dirnames[:] = [d for d in dirnames if d not in excluded]
        for filename in filenames:
            if filename.endswith(config.project_suffix):
                found.append(Path(dirpath) / filename)

    found.sort()
    logger.debug(f"Discovered {len(found)} project(s) under {root_path}")
    return found


def build_command(
    project: Path,
    config: MigrunnerConfig | None = None,
    no_build: bool = False,
) -> tuple[str, ...]:
    """Build the argv that runs one project."""
    config = config or MigrunnerConfig()
    command = [config.runner, *config.run_args, str(project)]
    if no_build:
        command.append("--no-build")
    command.extend(config.extra_args)
    return tuple(command)


def build_units(
    projects: list[Path],
    config: MigrunnerConfig | None = None,
    no_build: bool = False,
    root: str | Path | None = None,
) -> list[RunnableUnit]:
    """Turn discovered project files into runnable units.

    Units are named after the project file. When two projects share a file
    name, both use their path relative to root (or the full path) instead.
    """
    config = config or MigrunnerConfig()
    root_path = Path(root).absolute() if root is not None else None
    name_counts = Counter(p.name for p in projects)

    units = []
    for project in projects:
        project = project.absolute()
        name = project.name
        if name_counts[name] > 1:
            name = _relative_name(project, root_path)

        units.append(
            RunnableUnit(
                name=name,
                working_directory=project.parent,
                command=build_command(project, config, no_build=no_build),
            )
        )
    return units


def _relative_name(project: Path, root: Path | None) -> str:
    if root is not None:
        try:
            return project.relative_to(root).as_posix()
        except ValueError:
            pass
    return project.as_posix()
