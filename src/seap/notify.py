"""
Transient user notifications.

Terminal stand-in for toast messages: one styled line per event. guard()
is how call sites recover from client errors without crashing the app.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from loguru import logger
from rich.console import Console
from rich.text import Text

from .errors import SEAPError


class Notifier:
    """Writes success/error/info notifications to a rich console."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)
        self.error_count = 0

    def _show(self, icon: str, message: str, style: str):
        text = Text()
        text.append(f"{icon} ", style=style)
        text.append(message, style=style)
        self.console.print(text)

    def success(self, message: str):
        self._show("✔", message, "bold green")

    def info(self, message: str):
        self._show("ℹ", message, "cyan")

    def error(self, message: str):
        self.error_count += 1
        self._show("✖", message, "bold red")

    @contextmanager
    def guard(self, fallback: str = "Something went wrong") -> Iterator[None]:
        """
        Report and swallow client errors raised inside the block.

        Only SEAPError is caught; programming errors still propagate.

        Args:
            fallback: Message used when the error carries none
        """
        try:
            yield
        except SEAPError as e:
            logger.debug(f"Recovered from {type(e).__name__}: {e.message}")
            self.error(e.message or fallback)
