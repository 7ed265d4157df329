# src/lens/core/logging.py
"""Logging helpers: a small facade over `logging` that renders with rich."""

import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional

from rich.console import Console
from rich.logging import RichHandler


def _markup(style: str) -> Callable[[Any], str]:
    return lambda text: f"[{style}]{text}[/{style}]"


# Markup helpers so the same kind of object always gets the same color.
color_palette: Dict[str, Callable[[Any], str]] = {
    "entity": _markup("bold cyan"),
    "alias": _markup("magenta"),
    "field": _markup("green"),
    "operator": _markup("yellow"),
    "cache": _markup("blue"),
    "dim": _markup("dim"),
}


class Logger:
    """
    Project logger.

    Messages go through the standard `logging` module (logger `lens`), so
    applications keep control over levels and handlers. `setup_logging()`
    installs a rich handler for console output.
    """

    def __init__(self, name: str = "lens", console: Optional[Console] = None):
        self._logger = logging.getLogger(name)
        self.console = console or Console(stderr=True)
        self._indent = 0

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def _log(self, level: int, message: str) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, "  " * self._indent + message, stacklevel=3)

    def debug(self, message: str) -> None:
        self._log(logging.DEBUG, message)

    def info(self, message: str) -> None:
        self._log(logging.INFO, message)

    def success(self, message: str) -> None:
        self._log(logging.INFO, f"[green]✓[/green] {message}")

    def warn(self, message: str) -> None:
        self._log(logging.WARNING, message)

    warning = warn

    def error(self, message: str) -> None:
        self._log(logging.ERROR, message)

    def section(self, title: str) -> None:
        self._log(logging.INFO, f"[bold]── {title} ──[/bold]")

    @contextmanager
    def indented(self) -> Iterator[None]:
        self._indent += 1
        try:
            yield
        finally:
            self._indent -= 1

    @contextmanager
    def timed(self, label: str, level: int = logging.DEBUG) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = (time.perf_counter() - start) * 1000
            self._log(level, f"{label} {color_palette['dim'](f'({elapsed:.2f}ms)')}")


def setup_logging(level: int | str = logging.INFO, console: Optional[Console] = None) -> None:
    """Sends `lens` log records to a rich console handler."""
    handler = RichHandler(
        console=console or log.console,
        markup=True,
        show_path=False,
        rich_tracebacks=True,
    )
    logger = log.logger
    logger.handlers = [h for h in logger.handlers if not isinstance(h, RichHandler)]
    logger.addHandler(handler)
    logger.setLevel(level)


# Library default: no output unless the application configures logging.
logging.getLogger("lens").addHandler(logging.NullHandler())

log = Logger()
