"""Progress display and notification collaborators.

The orchestrator only talks to the ``ProgressReporter`` and ``Notifier``
interfaces; which concrete reporter a job gets depends on its feedback mode.
"""

from __future__ import annotations

import subprocess
import sys
from typing import TextIO

from easydmg.domain import FeedbackMode
from easydmg.logging import LoggerFactory


log = LoggerFactory.for_feedback()

OSASCRIPT = "/usr/bin/osascript"
BAR_WIDTH = 24


class ProgressReporter:
    """Receives stage messages and a progress fraction in [0, 1]."""

    def show(self, message: str, progress: float = 0.0) -> None:
        raise NotImplementedError

    def update(self, message: str, progress: float | None = None) -> None:
        raise NotImplementedError

    def hide(self) -> None:
        raise NotImplementedError


class SilentReporter(ProgressReporter):
    """Reporter for the notification and silent modes: messages only reach the log."""

    def show(self, message: str, progress: float = 0.0) -> None:
        log.debug(message)

    def update(self, message: str, progress: float | None = None) -> None:
        log.debug(message)

    def hide(self) -> None:
        pass


def format_progress_line(message: str, progress: float | None) -> str:
    """Format a one-line progress display, e.g. ``[######------]  50% Installing app...``."""
    if progress is None:
        return message
    clamped = max(0.0, min(1.0, float(progress)))
    filled = int(BAR_WIDTH * clamped)
    bar = "#" * filled + "-" * (BAR_WIDTH - filled)
    return f"[{bar}] {clamped * 100:3.0f}% {message}"


class ConsoleProgressReporter(ProgressReporter):
    """Progress display on a terminal stream.

    Redraws a single line in place when the stream is a TTY, otherwise
    writes one line per update.
    """

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream or sys.stderr
        self._progress: float | None = None
        self._visible = False
        self._last_width = 0

    def _write(self, text: str) -> None:
        if self.stream.isatty():
            padding = " " * max(0, self._last_width - len(text))
            self.stream.write(f"\r{text}{padding}")
            self._last_width = len(text)
        else:
            self.stream.write(text + "\n")
        self.stream.flush()

    def show(self, message: str, progress: float = 0.0) -> None:
        self._visible = True
        self._progress = progress
        self._write(format_progress_line(message, progress))

    def update(self, message: str, progress: float | None = None) -> None:
        if progress is not None:
            self._progress = progress
        if not self._visible:
            self._visible = True
        self._write(format_progress_line(message, self._progress))

    def hide(self) -> None:
        if self._visible and self.stream.isatty():
            self.stream.write("\n")
            self.stream.flush()
        self._visible = False
        self._last_width = 0


class Notifier:
    """Delivers a one-shot system notification."""

    def notify(self, title: str, message: str) -> None:
        raise NotImplementedError


def _applescript_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class OsascriptNotifier(Notifier):
    """Posts notifications through ``osascript``.

    The child runs in its own session and is not waited on, so the
    notification is delivered even if this process exits right away.
    """

    def __init__(self, app_name: str = "EasyDMG"):
        self.app_name = app_name

    def notify(self, title: str, message: str) -> None:
        script = (
            f"display notification {_applescript_string(message)} "
            f"with title {_applescript_string(self.app_name)} "
            f"subtitle {_applescript_string(title)}"
        )
        log.debug(f"Posting notification: {title} - {message}")
        try:
            subprocess.Popen(
                [OSASCRIPT, "-e", script],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as error:
            log.warning(f"Error showing notification: {error}")


def build_reporter(mode: FeedbackMode) -> ProgressReporter:
    """Return the reporter used for a job in ``mode``."""
    if mode is FeedbackMode.PROGRESS:
        return ConsoleProgressReporter()
    return SilentReporter()
