"""Live status table for running migrators.

Provides an in-place redrawn two-column (Project, Status) table.
"""

import threading
from collections.abc import Sequence

from rich import box
from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.table import Table

from migrunner.core.models import StatusRow


class LiveStatusView:
    """
    Terminal view of the latest status of every tracked process.

    Design Notes:
    - Redraws on every render() call rather than on a timer; auto refresh
      is off so the display changes only when a status changes.
    - render() is serialized by a lock so concurrent callers cannot leave an
      older snapshot on screen after a newer one.
    - Before start() and after stop(), render() only records the snapshot;
      the last one is kept in ``rows``.
    """

    def __init__(self, console: Console | None = None, refresh_per_second: float = 4.0):
        self.console = console or Console()
        self.refresh_per_second = refresh_per_second
        self.rows: list[StatusRow] = []
        self._live: Live | None = None
        self._lock = threading.Lock()

    @staticmethod
    def build_table(rows: Sequence[StatusRow]) -> Table:
        """Render status rows as an ASCII-bordered table."""
        table = Table(box=box.ASCII)
        table.add_column("Project", style="cyan")
        table.add_column("Status")

        for row in rows:
            # SECURITY: child output is untrusted, escape to prevent Rich markup injection
            table.add_row(escape(row.name), escape(row.status_text))

        return table

    def start(self) -> None:
        with self._lock:
            if self._live is not None:
                return
            self.console.print()
            self._live = Live(
                self.build_table(self.rows),
                console=self.console,
                auto_refresh=False,
                refresh_per_second=self.refresh_per_second,
            )
            self._live.start(refresh=True)

    def render(self, rows: Sequence[StatusRow]) -> None:
        """Redraw the table with the given snapshot."""
        with self._lock:
            self.rows = list(rows)
            if self._live is not None:
                self._live.update(self.build_table(self.rows), refresh=True)

    def stop(self) -> None:
        """Leave the last rendered table on screen and stop redrawing."""
        with self._lock:
            if self._live is None:
                return
            self._live.update(self.build_table(self.rows), refresh=True)
            self._live.stop()
            self._live = None

    @property
    def is_live(self) -> bool:
        return self._live is not None

    def __enter__(self) -> "LiveStatusView":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()
