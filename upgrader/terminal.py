"""Terminal output: separators, step results, prompts and notifications."""

from __future__ import annotations

import enum
import functools
import logging
import os
import subprocess
import sys
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TextIO

from upgrader.utils import which

try:
    import termios
    import tty
except ImportError:  # pragma: no cover - not available on Windows
    termios = None
    tty = None

try:
    import msvcrt
except ImportError:
    msvcrt = None

logger = logging.getLogger(__name__)

APP_NAME = "Topgrade"
_BOLD = "1"
_RED = "31"
_GREEN = "32"
_YELLOW = "33"
_BLUE = "34"
_DETECT = object()


class StepStatus(enum.Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    IGNORED = "ignored"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StepResult:
    """The outcome of one step; ``reason`` explains a skip."""

    status: StepStatus
    reason: str = ""


def shell() -> str:
    """Return the user's shell."""
    if sys.platform == "win32":
        return "pwsh" if which("pwsh") is not None else "powershell"
    return os.environ.get("SHELL", "sh")


def run_shell() -> None:
    """Start an interactive shell and wait for it to exit."""
    subprocess.run([shell()], env={**os.environ, "IN_TOPGRADE": "1"}, check=False)


def _is_tty(stream: object) -> bool:
    isatty = getattr(stream, "isatty", None)
    try:
        return bool(isatty and isatty())
    except (OSError, ValueError):
        return False


def _detect_width(stream: TextIO) -> int | None:
    if not _is_tty(stream):
        return None
    try:
        return os.get_terminal_size(stream.fileno()).columns
    except (OSError, ValueError, AttributeError):
        return None


def _find_notifier() -> Path | None:
    if sys.platform.startswith("linux"):
        return which("notify-send")
    if sys.platform == "darwin":
        return which("osascript")
    return None


class Terminal:
    """Writes decorated output to a stream and reads single keys."""

    def __init__(self, stream: TextIO | None = None, width=_DETECT, prefix: str | None = None) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.input: TextIO = sys.stdin
        self.width: int | None = _detect_width(self.stream) if width is _DETECT else width
        if prefix is None:
            env_prefix = os.environ.get("TOPGRADE_PREFIX")
            prefix = f"({env_prefix}) " if env_prefix is not None else ""
        self.prefix = prefix
        self.title_enabled = True
        self.display_time = True
        self.desktop_notifications = False
        self.notifier: Path | None = _find_notifier()

    def _style(self, text: str, *codes: str) -> str:
        if not _is_tty(self.stream):
            return text
        return f"\x1b[{';'.join(codes)}m{text}\x1b[0m"

    def _write(self, text: str) -> None:
        try:
            self.stream.write(text)
            self.stream.flush()
        except OSError:
            pass

    def _set_title(self, title: str) -> None:
        if _is_tty(self.stream):
            self._write(f"\x1b]0;{title}\x07")

    def _read_char(self) -> str:
        source = self.input
        if _is_tty(source) and termios is not None:
            fd = source.fileno()
            saved = termios.tcgetattr(fd)
            try:
                tty.setraw(fd)
                char = os.read(fd, 1).decode("utf-8", errors="replace")
            finally:
                termios.tcsetattr(fd, termios.TCSADRAIN, saved)
        elif _is_tty(source) and msvcrt is not None:
            char = msvcrt.getwch()
        else:
            char = source.read(1)
        if not char:
            raise EOFError("end of terminal input")
        return char

    def notify_desktop(self, message: str, timeout: float | None = None) -> None:
        """Show a desktop notification; ``timeout`` is in seconds."""
        logger.debug("Desktop notification: %s", message)
        if self.notifier is None:
            return
        if sys.platform == "darwin":
            script = f"display notification {_applescript_string(message)} with title \"{APP_NAME}\""
            command = [os.fspath(self.notifier), "-e", script]
        else:
            command = [os.fspath(self.notifier)]
            if timeout is not None:
                command += ["-t", str(int(timeout * 1000))]
            command += ["-a", APP_NAME, APP_NAME, message]
        try:
            subprocess.run(command, capture_output=True, check=False)
        except OSError:
            pass

    def print_separator(self, message: str) -> None:
        """Print a step header line."""
        if self.title_enabled:
            self._set_title(f"{self.prefix}{APP_NAME} - {message}")
        if self.desktop_notifications:
            self.notify_desktop(message, 5)

        if self.display_time:
            now = datetime.now()
            message = f"{self.prefix}{now:%H:%M:%S} - {message}"

        if self.width is None:
            self._write(f"―― {message} ――\n")
            return
        border = max(2, max(0, min(80, self.width) - 4 - len(message.encode("utf-8"))))
        line = f"\n―― {message} {'―' * border}"
        self._write(f"{self._style(line, _BOLD)}\n")

    def print_warning(self, message: str) -> None:
        self._write(f"{self._style(message, _YELLOW, _BOLD)}\n")

    def print_info(self, message: str) -> None:
        self._write(f"{self._style(message, _BLUE, _BOLD)}\n")

    def print_result(self, key: str, result: StepResult) -> None:
        """Print a summary line for one step."""
        if result.status is StepStatus.SUCCESS:
            text = self._style("OK", _BOLD, _GREEN)
        elif result.status is StepStatus.FAILURE:
            text = self._style("FAILED", _BOLD, _RED)
        elif result.status is StepStatus.IGNORED:
            text = self._style("IGNORED", _BOLD, _YELLOW)
        else:
            text = f"{self._style('SKIPPED', _BOLD, _BLUE)}: {result.reason}"
        self._write(f"{key}: {text}\n")

    def prompt_yesno(self, question: str) -> bool:
        """Ask a yes/no question; the default answer is no."""
        self._write(self._style(f"{question} (y)es/(N)o", _YELLOW, _BOLD))
        while True:
            char = self._read_char()
            if char in ("y", "Y"):
                return True
            if char in ("n", "N", "\r", "\n"):
                return False

    def should_retry(self, interrupted: bool, step_name: str) -> bool:
        """Ask whether a failed step should be retried.

        Raises InterruptedError when the user chooses to quit.
        """
        if self.width is None:
            return False
        if self.title_enabled:
            self._set_title(f"{APP_NAME} - Awaiting user")
        self.notify_desktop(f"{step_name} failed", None)
        self._write("\n" + self._style(f"{self.prefix}Retry? (y)es/(N)o/(s)hell/(q)uit", _YELLOW, _BOLD))

        while True:
            try:
                char = self._read_char()
            except (OSError, EOFError) as exc:
                logger.error("Error reading from terminal: %s", exc)
                answer = False
                break
            if char in ("y", "Y"):
                answer = True
                break
            if char in ("s", "S"):
                self._write("\n\nDropping you to shell. Fix what you need and then exit the shell.\n\n")
                run_shell()
                answer = True
                break
            if char in ("n", "N", "\r", "\n"):
                answer = False
                break
            if char in ("q", "Q"):
                raise InterruptedError("Interrupted by the user")

        self._write("\n")
        return answer

    def get_char(self) -> str:
        """Read one key from the terminal."""
        return self._read_char()


def _applescript_string(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


_lock = threading.RLock()


@functools.lru_cache(maxsize=None)
def _instance() -> Terminal:
    return Terminal()


def should_retry(interrupted: bool, step_name: str) -> bool:
    with _lock:
        return _instance().should_retry(interrupted, step_name)


def print_separator(message: str) -> None:
    with _lock:
        _instance().print_separator(message)


def print_warning(message: str) -> None:
    with _lock:
        _instance().print_warning(message)


def print_info(message: str) -> None:
    with _lock:
        _instance().print_info(message)


def print_result(key: str, result: StepResult) -> None:
    with _lock:
        _instance().print_result(key, result)


def is_dumb() -> bool:
    """Tell whether the terminal is dumb."""
    with _lock:
        return _instance().width is None


def get_key() -> str:
    with _lock:
        return _instance().get_char()


def set_title(enabled: bool) -> None:
    with _lock:
        _instance().title_enabled = enabled


def set_desktop_notifications(enabled: bool) -> None:
    with _lock:
        _instance().desktop_notifications = enabled


def display_time(enabled: bool) -> None:
    with _lock:
        _instance().display_time = enabled


def prompt_yesno(question: str) -> bool:
    with _lock:
        return _instance().prompt_yesno(question)


def notify_desktop(message: str, timeout: float | None = None) -> None:
    with _lock:
        _instance().notify_desktop(message, timeout)