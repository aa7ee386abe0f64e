"""Launching and terminating migrator child processes.

ProcessLauncher starts one RunnableUnit as a child process with its stdout
captured as a text line stream. Termination is always tree-wide: the
child and every process it spawned are killed, so nothing outlives the run.
"""

import logging
import os
import signal
import subprocess
import time
from dataclasses import dataclass, field
from typing import IO

import psutil

from migrunner.core.models import RunnableUnit

logger = logging.getLogger(__name__)

# Each child leads its own process group so the whole group can be killed at once
_NEW_SESSION = os.name == "posix"


@dataclass(frozen=True)
class LaunchError:
    """A unit whose command could not be started.

    Returned by ProcessLauncher.launch() instead of being raised, so the
    orchestrator decides whether to abort.
    """

    unit: RunnableUnit
    reason: str

    def __str__(self) -> str:
        return f"Failed to start '{self.unit.name}': {self.reason}"


@dataclass(eq=False)
class ProcessHandle:
    """A started child process and its stdout stream."""

    unit: RunnableUnit
    process: subprocess.Popen
    started_at: float = field(default_factory=time.monotonic)

    @property
    def name(self) -> str:
        return self.unit.name

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def stdout(self) -> IO[str] | None:
        return self.process.stdout

    @property
    def returncode(self) -> int | None:
        return self.process.poll()

    def has_exited(self) -> bool:
        return self.process.poll() is not None


class ProcessLauncher:
    """
    Starts, kills and reaps child processes.

    USAGE:
        launcher = ProcessLauncher()
        result = launcher.launch(unit)
        if isinstance(result, LaunchError):
            ...  # abort
        launcher.request_termination(result)
        launcher.wait(result)
    """

    def __init__(self, termination_timeout: float = 10.0, discard_stderr: bool = False):
        self.termination_timeout = termination_timeout
        self.discard_stderr = discard_stderr

    def launch(self, unit: RunnableUnit) -> ProcessHandle | LaunchError:
        """Start the unit's command in its working directory."""
        if not unit.working_directory.is_dir():
            return LaunchError(unit, f"working directory does not exist: {unit.working_directory}")

        try:
            process = subprocess.Popen(
                list(unit.command),
                cwd=unit.working_directory,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL if self.discard_stderr else None,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                start_new_session=_NEW_SESSION,
            )
        except FileNotFoundError:
            return LaunchError(unit, f"executable not found: {unit.executable}")
        except PermissionError as e:
            return LaunchError(unit, f"permission denied: {e}")
        except OSError as e:
            return LaunchError(unit, str(e))

        logger.info(f"Started '{unit.name}' (PID {process.pid}): {' '.join(unit.command)}")
        return ProcessHandle(unit=unit, process=process)

    def request_termination(self, handle: ProcessHandle) -> bool:
        """Kill the process and all of its descendants.

        The child is suspended before its tree is listed so it cannot spawn
        anything the listing misses. On POSIX the child leads its own
        process group, which is killed as a whole; that also reaches
        leftovers of a child that has already exited. Kill failures are
        logged and absorbed.

        Returns:
            True if a kill was issued, False if the process had already exited.
        """
        if handle.has_exited():
            self._kill_process_group(handle)
            return False

        try:
            parent = psutil.Process(handle.pid)
            parent.suspend()
            descendants = parent.children(recursive=True)
        except psutil.NoSuchProcess:
            self._kill_process_group(handle)
            return False
        except psutil.Error as e:
            logger.warning(f"Could not inspect process tree of '{handle.name}' (PID {handle.pid}): {e}")
            descendants = []

        logger.debug(f"Killing '{handle.name}' (PID {handle.pid}) and {len(descendants)} descendant(s)")

        self._kill_process_group(handle)

        for proc in descendants:
            try:
                proc.kill()
            except psutil.NoSuchProcess:
                continue
            except psutil.Error as e:
                logger.warning(f"Failed to kill descendant PID {proc.pid} of '{handle.name}': {e}")

        try:
            handle.process.kill()
        except OSError as e:
            logger.warning(f"Failed to kill '{handle.name}' (PID {handle.pid}): {e}")

        _wait_for_exit(descendants, self.termination_timeout)
        return True

    def _kill_process_group(self, handle: ProcessHandle) -> None:
        if not _NEW_SESSION:
            return
        try:
            os.killpg(handle.pid, signal.SIGKILL)
        except ProcessLookupError:
            return
        except OSError as e:
            logger.debug(f"Could not kill process group of '{handle.name}' (PGID {handle.pid}): {e}")

    def wait(self, handle: ProcessHandle, timeout: float | None = None) -> int | None:
        """Block until the OS reports the process gone.

        Returns:
            The exit code, or None if the timeout elapsed first.
        """
        try:
            return handle.process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning(f"'{handle.name}' (PID {handle.pid}) still running after {timeout}s")
            return None


def _is_gone(proc: psutil.Process) -> bool:
    # Zombies are dead; they only wait for their new parent to reap them
    try:
        return proc.status() == psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return True
    except psutil.Error:
        return False


def _wait_for_exit(procs: list[psutil.Process], timeout: float, interval: float = 0.05) -> None:
    """Wait until every process is gone or the timeout elapses.

    Not psutil.wait_procs: it keeps waiting on a zombie descendant whose new
    parent never reaps it, so zombies are counted as gone here.
    """
    deadline = time.monotonic() + timeout
    alive = [p for p in procs if not _is_gone(p)]
    while alive and time.monotonic() < deadline:
        time.sleep(interval)
        alive = [p for p in alive if not _is_gone(p)]

    for proc in alive:
        logger.warning(f"Descendant PID {proc.pid} did not exit within {timeout}s")
