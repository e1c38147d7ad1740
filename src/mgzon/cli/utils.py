"""Shared utility functions for CLI commands."""

import logging
import sys
import threading
import time
from datetime import UTC, datetime

import click
from questionary import Style

from .platform.auth import parse_timestamp

# Pastel prompt style shared by all interactive prompts
PROMPT_STYLE = Style(
    [
        ("qmark", "fg:#5e81ac"),
        ("question", "fg:#d8dee9 bold"),
        ("answer", "fg:#a3be8c"),
        ("pointer", "fg:#88c0d0 bold"),
        ("highlighted", "fg:#88c0d0 bold"),
        ("selected", "fg:#a3be8c"),
        ("instruction", "fg:#4c566a"),
        ("disabled", "fg:#4c566a italic"),
    ]
)

RULE_WIDTH = 60

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class _StderrHandler(logging.StreamHandler):
    """StreamHandler bound to whatever sys.stderr is at emit time."""

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value):
        pass


def configure_logging(debug: bool = False, *extra: str) -> None:
    """Send log records from the mgzon package to stderr.

    Args:
        debug: Log at DEBUG instead of WARNING.
        *extra: Further logger names to enable at the same level (e.g. urllib3).
    """
    level = logging.DEBUG if debug else logging.WARNING
    for name in ("mgzon", *extra):
        logger = logging.getLogger(name)
        if not any(isinstance(h, _StderrHandler) for h in logger.handlers):
            handler = _StderrHandler()
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(handler)
        logger.setLevel(level)


def is_interactive() -> bool:
    """True when prompts can be shown (stdin is a terminal)."""
    return sys.stdin.isatty()


def rule(char: str = "─", width: int = RULE_WIDTH) -> None:
    click.echo(click.style(char * width, dim=True))


def heading(title: str) -> None:
    """Print a section title followed by a rule."""
    click.echo()
    click.echo(click.style(title, fg="cyan", bold=True))
    rule()


def field(label: str, value: object, fg: str | None = None, indent: int = 2) -> None:
    """Print an aligned `label: value` line."""
    text = f"{' ' * indent}{label + ':':<14} {value}"
    click.echo(click.style(text, fg=fg) if fg else text)


def format_timestamp(ts: str | None, short: bool = False) -> str:
    """Format ISO timestamp to readable local time.

    Args:
        ts: ISO 8601 timestamp string.
        short: If True, print the date only.

    Returns:
        Formatted local time string.
    """
    if not ts:
        return ""
    parsed = parse_timestamp(ts)
    if parsed is None:
        return ts[:16]
    local = parsed.astimezone()
    if short:
        return local.strftime("%Y-%m-%d")
    return local.strftime("%Y-%m-%d %H:%M:%S")


def days_until(ts: str | None) -> int | None:
    """Whole days from now until ts, rounded up. None if ts is unset or invalid."""
    parsed = parse_timestamp(ts)
    if parsed is None:
        return None
    seconds = (parsed - datetime.now(UTC)).total_seconds()
    return int(-(-seconds // 86400))


def expiry_color(days: int) -> str:
    """Colour for a days-until-expiry figure."""
    if days < 7:
        return "red"
    if days < 30:
        return "yellow"
    return "green"


def format_size(size_bytes: int) -> str:
    """Format byte count as human-readable size."""
    if size_bytes >= 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    if size_bytes >= 1024:
        return f"{size_bytes / 1024:.0f} KB"
    return f"{size_bytes} B"


def mask_key(key: str | None, head: int = 10, tail: int = 0) -> str:
    """Mask an API key for display, e.g. `mz_live_ab...wxyz`."""
    if not key:
        return "Not set"
    if len(key) <= head + tail:
        return key[:4] + "..."
    masked = key[:head] + "..."
    if tail:
        masked += key[-tail:]
    return masked


def format_elapsed(seconds: float) -> str:
    """Format elapsed seconds as human-readable duration.

    Args:
        seconds: Elapsed time in seconds.

    Returns:
        Human-readable duration string (e.g., "45s", "2m 30s").
    """
    secs = int(seconds)
    if secs < 60:
        return f"{secs}s"
    return f"{secs // 60}m {secs % 60}s"


class Spinner:
    """Status line on stderr for slow API calls and builds.

    The braille animation only runs when stderr is a terminal. Otherwise the
    spinner stays silent until ``done``, ``fail`` or ``warn`` writes the final
    line, so piped output and CI logs get one line per step.
    """

    FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"
    FRAME_DELAY = 0.08
    CLEAR = "\r\033[K"

    def __init__(self, show_elapsed: bool = False):
        self.show_elapsed = show_elapsed
        self.text = ""
        self._stopped = threading.Event()
        self._stopped.set()
        self._worker: threading.Thread | None = None
        self._started_at = 0.0
        self._tty = sys.stderr.isatty()

    @property
    def running(self) -> bool:
        return not self._stopped.is_set()

    def start(self, text: str = "") -> None:
        self.text = text
        if self.running:
            return
        self._stopped.clear()
        self._started_at = time.monotonic()
        if self._tty:
            self._worker = threading.Thread(target=self._spin, daemon=True)
            self._worker.start()

    def update(self, text: str) -> None:
        self.text = text

    def _halt(self) -> None:
        self._stopped.set()
        if self._worker is not None:
            self._worker.join(timeout=0.2)
            self._worker = None

    def stop(self) -> None:
        """Erase the status line without leaving a trace. Safe to call twice."""
        self._halt()
        if self._tty:
            sys.stderr.write(self.CLEAR)
            sys.stderr.flush()

    def done(self, text: str | None = None, symbol: str = "✓") -> None:
        self._halt()
        prefix = self.CLEAR if self._tty else ""
        sys.stderr.write(f"{prefix}{symbol} {text or self.text}\n")
        sys.stderr.flush()

    def fail(self, text: str | None = None) -> None:
        self.done(text, symbol="✗")

    def warn(self, text: str | None = None) -> None:
        self.done(text, symbol="!")

    def _spin(self) -> None:
        frame = 0
        while not self._stopped.wait(self.FRAME_DELAY):
            line = f"{self.CLEAR}{self.FRAMES[frame % len(self.FRAMES)]} {self.text}"
            if self.show_elapsed:
                elapsed = format_elapsed(time.monotonic() - self._started_at)
                line += click.style(f" {elapsed}", dim=True)
            sys.stderr.write(line)
            sys.stderr.flush()
            frame += 1
