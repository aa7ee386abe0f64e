"""CLI UI components for terminal status display."""

from migrunner.cli_ui.live_view import LiveStatusView

__all__ = ["LiveStatusView"]
