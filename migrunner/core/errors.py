"""Exceptions raised by the migration runner."""


class MigrunnerError(Exception):
    """Base error for the migration runner."""

    pass


class ConfigError(MigrunnerError):
    """Configuration file is unreadable or fails validation."""

    pass


class DiscoveryError(MigrunnerError):
    """Project discovery could not scan the requested directory."""

    pass
