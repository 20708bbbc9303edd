"""Process helpers, path checks and the errors shared by every step."""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import sys
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SkipStep(Exception):
    """A step cannot run here and should be reported as skipped."""


class ProcessFailed(Exception):
    """A child process exited unsuccessfully."""

    def __init__(self, returncode: int) -> None:
        super().__init__(f"Process failed with exit code {returncode}")
        self.returncode = returncode


class UnknownLinuxDistribution(Exception):
    """The running Linux distribution could not be identified."""

    def __init__(self) -> None:
        super().__init__("Unknown Linux Distribution")


class NoPackageManager(Exception):
    """No usable package manager was found."""

    def __init__(self) -> None:
        super().__init__("Failed getting the system package manager")


def check_status(returncode: int, codes: Iterable[int] = ()) -> None:
    """Raise ProcessFailed unless the return code is zero or one of ``codes``.

    Termination by a signal counts as code -1.
    """
    code = -1 if returncode < 0 else returncode
    if code == 0 or code in set(codes):
        return
    raise ProcessFailed(code)


def _argv(args: Sequence[object]) -> list[str]:
    return [os.fspath(arg) if isinstance(arg, os.PathLike) else str(arg) for arg in args]


@dataclass
class CommandRunner:
    """Runs step commands, or only announces them when ``dry_run`` is set.

    Every command handed to :meth:`run` is recorded in ``executed``.
    """

    dry_run: bool = False
    stream: TextIO | None = None
    executed: list[tuple[str, ...]] = field(default_factory=list)

    def run(
        self,
        args: Sequence[object],
        *,
        env: Mapping[str, str] | None = None,
        cwd: str | os.PathLike[str] | None = None,
        codes: Iterable[int] = (),
    ) -> None:
        """Run ``args`` and raise ProcessFailed on an unaccepted exit code."""
        argv = _argv(args)
        self.executed.append(tuple(argv))
        if self.dry_run:
            out = self.stream if self.stream is not None else sys.stdout
            out.write(f"Dry running: {shlex.join(argv)}\n")
            return
        merged = None
        if env is not None:
            merged = {**os.environ, **env}
        completed = subprocess.run(argv, env=merged, cwd=cwd, check=False)
        check_status(completed.returncode, codes)


def check_output(args: Sequence[object], cwd: str | os.PathLike[str] | None = None) -> str:
    """Run ``args`` and return its standard output; raise ProcessFailed on failure."""
    completed = subprocess.run(
        _argv(args),
        cwd=cwd,
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        check=False,
    )
    check_status(completed.returncode)
    return completed.stdout


def if_exists(path: str | os.PathLike[str]) -> Path | None:
    """Return the path if it exists, otherwise None."""
    candidate = Path(path)
    if candidate.exists():
        logger.debug("Path %s exists", candidate)
        return candidate
    logger.debug("Path %s doesn't exist", candidate)
    return None


def is_descendant_of(path: str | os.PathLike[str], ancestor: str | os.PathLike[str]) -> bool:
    """Tell whether the leading components of both paths agree."""
    return all(a == b for a, b in zip(Path(path).parts, Path(ancestor).parts))


def require_path(path: str | os.PathLike[str]) -> Path:
    """Return the path if it exists, otherwise raise SkipStep."""
    candidate = Path(path)
    if candidate.exists():
        logger.debug("Path %s exists", candidate)
        return candidate
    raise SkipStep(f'Path "{candidate}" doesn\'t exist')


def which(binary_name: str | os.PathLike[str]) -> Path | None:
    """Locate an executable on PATH."""
    found = shutil.which(os.fspath(binary_name))
    if found is None:
        logger.debug("Cannot find %r", binary_name)
        return None
    logger.debug("Detected %s as %r", found, binary_name)
    return Path(found)


def sudo() -> Path | None:
    """Find a privilege-escalation tool, preferring doas, sudo, gsudo, pkexec."""
    for name in ("doas", "sudo", "gsudo", "pkexec"):
        found = which(name)
        if found is not None:
            return found
    return None


def editor() -> list[str]:
    """Return the editor command line from EDITOR, split on whitespace."""
    default = "notepad" if sys.platform == "win32" else "vi"
    return os.environ.get("EDITOR", default).split()


def require(binary_name: str | os.PathLike[str]) -> Path:
    """Locate an executable on PATH or raise SkipStep."""
    found = which(binary_name)
    if found is None:
        raise SkipStep(f'Cannot find "{os.fspath(binary_name)}" in PATH')
    return found


def require_option(value: T | None, cause: str) -> T:
    """Return ``value`` unless it is None, in which case raise SkipStep(cause)."""
    if value is None:
        raise SkipStep(cause)
    return value