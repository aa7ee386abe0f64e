"""Child process launching and tree-wide termination."""

from migrunner.process.launcher import LaunchError, ProcessHandle, ProcessLauncher

__all__ = ["LaunchError", "ProcessHandle", "ProcessLauncher"]
