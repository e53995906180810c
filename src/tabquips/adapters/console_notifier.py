"""Console notification adapter.

Renders delivered quips as rich panels; used by the CLI and as the external
notifier when no popup is subscribed.
"""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from tabquips.core.models import QuipNotification


class RichConsoleNotifier:
    """Notifier adapter that prints notifications to a terminal."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self._console = console or Console()

    async def send(self, notification: QuipNotification) -> None:
        style = "magenta" if notification.is_rule_match else "cyan"
        timestamp = notification.timestamp.astimezone().strftime("%H:%M:%S")
        self._console.print(
            Panel(
                escape(notification.text),
                title=f"[bold {style}]{escape(notification.title)}[/]",
                subtitle=f"[dim]{timestamp}[/]",
                border_style=style,
                expand=False,
            )
        )
