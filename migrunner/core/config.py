"""Runner configuration.

Defaults work out of the box for .NET DbMigrator projects. A project can
override them with a ``.migrunner.yaml`` file in the scanned directory, or
an explicit file passed with ``--config`` / ``MIGRUNNER_CONFIG``.
"""

import logging
from pathlib import Path

import pydantic
import yaml
from pydantic import BaseModel, Field

from migrunner.core.errors import ConfigError
from migrunner.core.parser import MAX_STATUS_LENGTH
from migrunner.core.tracker import DEFAULT_INITIAL_STATUS

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".migrunner.yaml"


class MigrunnerConfig(BaseModel):
    """Settings for discovery, launching and display."""

    model_config = {"extra": "forbid"}

    # Discovery
    project_suffix: str = "DbMigrator.csproj"
    exclude_dirs: list[str] = Field(
        default_factory=lambda: ["bin", "obj", ".git", "node_modules"]
    )

    # Command building: <runner> <run_args...> <project> [--no-build] <extra_args...>
    runner: str = "dotnet"
    run_args: list[str] = Field(default_factory=lambda: ["run", "--project"])
    extra_args: list[str] = Field(default_factory=list)

    # Status display
    initial_status: str = DEFAULT_INITIAL_STATUS
    max_status_length: int = Field(default=MAX_STATUS_LENGTH, gt=0)
    refresh_per_second: float = Field(default=4.0, gt=0)

    # Process lifecycle (seconds)
    poll_interval: float = Field(default=0.1, gt=0)
    termination_timeout: float = Field(default=10.0, ge=0)
    output_drain_timeout: float = Field(default=2.0, ge=0)

    # stderr is inherited from the terminal unless discarded
    discard_stderr: bool = False


def load_config(
    path: str | Path | None = None,
    working_directory: str | Path | None = None,
) -> MigrunnerConfig:
    """Load configuration from YAML.

    Lookup order: explicit path, then ``.migrunner.yaml`` in the working
    directory, then built-in defaults.

    Raises:
        ConfigError: If the file is missing (explicit path only), is not
            valid YAML, or does not match the schema.
    """
    if path is not None:
        config_path = Path(path)
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
    elif working_directory is not None and (Path(working_directory) / CONFIG_FILENAME).is_file():
        config_path = Path(working_directory) / CONFIG_FILENAME
    else:
        return MigrunnerConfig()

    try:
        data = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping, got {type(data).__name__}")

    try:
        config = MigrunnerConfig.model_validate(data)
    except pydantic.ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}:\n{e}") from e

    logger.debug(f"Loaded configuration from {config_path}")
    return config
