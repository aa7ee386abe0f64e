"""Orchestration of concurrently running migrator processes.

Drives one run through IDLE -> LAUNCHING -> WATCHING -> DRAINING -> DONE:
launch every unit, stream each child's status into the tracker and the
live view, wait for all children or a cancellation, then kill and reap
whatever is left.
"""

import logging
import threading
from collections.abc import Iterable

from rich.console import Console

from migrunner.cli_ui.live_view import LiveStatusView
from migrunner.core.config import MigrunnerConfig
from migrunner.core.models import RunnableUnit, RunOutcome, RunResult, RunState
from migrunner.core.parser import parse_status_line
from migrunner.core.tracker import StatusTracker
from migrunner.process.launcher import LaunchError, ProcessHandle, ProcessLauncher

logger = logging.getLogger(__name__)


class Orchestrator:
    """
    Runs a set of RunnableUnits to completion or cancellation.

    Design:
    - One orchestrator per run; run() may only be called once.
    - Launching is sequential in discovery order and aborts on the first
      LaunchError (no partial-success path).
    - Each handle gets a watcher thread that owns a reader thread. The
      reader applies parsed lines in emission order; the watcher waits for
      exit, gives the reader up to output_drain_timeout to finish, then
      marks the entry exited.
    - The main thread blocks only in _wait_for_exit_or_cancel(). Cancellation
      wins over normal completion when both are true.
    - Draining runs on every path and calls request_termination() on every
      handle; the launcher makes that a no-op for exited processes.

    USAGE:
        orchestrator = Orchestrator(config)
        result = orchestrator.run(units, cancel_event)
        if not result.succeeded:
            ...
    """

    def __init__(
        self,
        config: MigrunnerConfig | None = None,
        launcher: ProcessLauncher | None = None,
        view: LiveStatusView | None = None,
        console: Console | None = None,
    ):
        self.config = config or MigrunnerConfig()
        self.console = console or Console()
        self.launcher = launcher or ProcessLauncher(
            termination_timeout=self.config.termination_timeout,
            discard_stderr=self.config.discard_stderr,
        )
        self.view = view or LiveStatusView(
            self.console, refresh_per_second=self.config.refresh_per_second
        )
        self.tracker = StatusTracker(self.config.initial_status)
        self.state = RunState.IDLE
        self.handles: list[ProcessHandle] = []

        self._watchers: list[threading.Thread] = []
        self._all_exited = threading.Event()
        self._remaining = 0
        self._remaining_lock = threading.Lock()

    def run(
        self,
        units: Iterable[RunnableUnit],
        cancel_event: threading.Event | None = None,
    ) -> RunResult:
        """Launch, watch and tear down all units.

        Args:
            units: Units in discovery order
            cancel_event: Set by an external source (e.g. a signal handler)
                to stop waiting and terminate everything still running

        Returns:
            RunResult describing how the run ended. Every launched process
            has exited by the time this returns.
        """
        if self.state != RunState.IDLE:
            raise RuntimeError(f"Orchestrator already used (state: {self.state.value})")

        units = list(units)
        names = [unit.name for unit in units]
        if len(set(names)) != len(names):
            raise ValueError("Runnable unit names must be unique")

        cancel_event = cancel_event or threading.Event()
        self.console.print(f"{len(units)} db migrator(s) found.")

        launch_error: LaunchError | None = None
        cancelled = False
        try:
            launch_error = self._launch_all(units)
            if launch_error is None:
                cancelled = self._watch(cancel_event)
        finally:
            terminated = self._drain()

        final_rows = self.tracker.snapshot()
        self._set_state(RunState.DONE)

        if launch_error is not None:
            outcome = RunOutcome.LAUNCH_FAILED
            self.console.print("Migrations aborted.")
        elif cancelled:
            outcome = RunOutcome.CANCELLED
            self.console.print("Migrations cancelled.")
        else:
            outcome = RunOutcome.SUCCEEDED
            self.console.print("Migrations finished.")

        return RunResult(
            outcome=outcome,
            state=self.state,
            launch_error=launch_error,
            launched=[h.name for h in self.handles],
            terminated=terminated,
            returncodes={h.name: h.returncode for h in self.handles},
            final_rows=final_rows,
        )

    # --- Launching ---

    def _launch_all(self, units: list[RunnableUnit]) -> LaunchError | None:
        self._set_state(RunState.LAUNCHING)
        for unit in units:
            result = self.launcher.launch(unit)
            if isinstance(result, LaunchError):
                logger.error(str(result))
                return result
            self.handles.append(result)
        return None

    # --- Watching ---

    def _watch(self, cancel_event: threading.Event) -> bool:
        """Stream output until all handles exit or cancellation. Returns True if cancelled."""
        self._set_state(RunState.WATCHING)

        for handle in self.handles:
            self.tracker.register(handle.name, handle)

        self.console.print("Waiting for db migrators to finish...")

        self._remaining = len(self.handles)
        if not self.handles:
            self._all_exited.set()

        self.tracker.subscribe(self.view.render)
        self.view.start()
        try:
            # Initial state is visible before any output arrives
            self.tracker.notify()

            for handle in self.handles:
                watcher = threading.Thread(
                    target=self._watch_handle,
                    args=(handle,),
                    name=f"watch-{handle.pid}",
                    daemon=True,
                )
                self._watchers.append(watcher)
                watcher.start()

            self._wait_for_exit_or_cancel(cancel_event)
        finally:
            self.view.stop()

        if cancel_event.is_set():
            logger.info("Run cancelled; terminating remaining processes")
            return True
        return False

    def _wait_for_exit_or_cancel(self, cancel_event: threading.Event) -> None:
        try:
            while not cancel_event.is_set():
                if self._all_exited.wait(self.config.poll_interval):
                    return
        except KeyboardInterrupt:
            cancel_event.set()

    def _watch_handle(self, handle: ProcessHandle) -> None:
        reader = threading.Thread(
            target=self._read_output,
            args=(handle,),
            name=f"read-{handle.pid}",
            daemon=True,
        )
        reader.start()

        returncode = handle.process.wait()
        # Descendants may still hold the pipe open; don't wait on them forever
        reader.join(timeout=self.config.output_drain_timeout)
        self.tracker.mark_exited(handle.name, returncode)
        logger.info(f"'{handle.name}' exited with code {returncode}")

        with self._remaining_lock:
            self._remaining -= 1
            if self._remaining <= 0:
                self._all_exited.set()

    def _read_output(self, handle: ProcessHandle) -> None:
        stream = handle.stdout
        if stream is None:
            return
        try:
            for line in stream:
                token = parse_status_line(line, self.config.max_status_length)
                if token is not None:
                    self.tracker.update(handle.name, token)
        except (OSError, ValueError) as e:
            logger.debug(f"Output stream of '{handle.name}' closed: {e}")
        finally:
            stream.close()

    # --- Draining ---

    def _drain(self) -> list[str]:
        """Terminate and reap every handle. Returns names that needed a kill."""
        self._set_state(RunState.DRAINING)
        self.console.print(f"- Killing running {len(self.handles)} processes...")

        terminated = []
        for handle in self.handles:
            if self.launcher.request_termination(handle):
                terminated.append(handle.name)
                logger.info(f"Terminated '{handle.name}'")
            returncode = self.launcher.wait(handle, timeout=self.config.termination_timeout)
            self.tracker.mark_exited(handle.name, returncode)

        for watcher in self._watchers:
            watcher.join(timeout=self.config.output_drain_timeout + self.config.poll_interval)

        return terminated

    def _set_state(self, state: RunState) -> None:
        logger.debug(f"Orchestrator state: {self.state.value} -> {state.value}")
        self.state = state

