"""Running inside tmux and updating tmux plugins."""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path
from typing import NoReturn

from upgrader.terminal import print_separator
from upgrader.utils import CommandRunner, check_status, require_path, which

SESSION = "topgrade"


def run_tpm(runner: CommandRunner, home: str | os.PathLike[str]) -> None:
    """Update tmux plugins through the tmux plugin manager."""
    tpm = require_path(Path(home, ".tmux/plugins/tpm/bin/update_plugins"))
    print_separator("tmux plugins")
    runner.run([tpm, "all"])


def _without_tmux() -> dict[str, str]:
    return {key: value for key, value in os.environ.items() if key != "TMUX"}


class Tmux:
    """A tmux executable together with the extra arguments given to every call."""

    def __init__(self, args: str | None = None) -> None:
        tmux = which("tmux")
        if tmux is None:
            raise FileNotFoundError("Could not find tmux")
        self.tmux: Path = tmux
        self.args: list[str] | None = args.split() if args is not None else None

    def _env(self) -> dict[str, str] | None:
        # Custom arguments usually select another server, so the current one is forgotten.
        return _without_tmux() if self.args is not None else None

    def build(self, *args: str) -> list[str]:
        """Return the tmux command line for ``args``."""
        return [os.fspath(self.tmux), *(self.args or []), *args]

    def has_session(self, session_name: str) -> bool:
        completed = subprocess.run(
            self.build("has-session", "-t", session_name),
            env=self._env(),
            capture_output=True,
            check=False,
        )
        return completed.returncode == 0

    def new_session(self, session_name: str) -> bool:
        completed = subprocess.run(
            self.build("new-session", "-d", "-s", session_name, "-n", "dummy"),
            env=self._env(),
            check=False,
        )
        return completed.returncode == 0

    def run_in_session(self, command: str) -> None:
        """Open a window in the session that runs ``command``."""
        completed = subprocess.run(
            self.build("new-window", "-t", SESSION, command),
            env=self._env(),
            check=False,
        )
        check_status(completed.returncode)


def run_in_tmux(args: str | None = None) -> NoReturn:
    """Relaunch the current program inside a tmux session and attach to it."""
    command = " ".join(["env", "TOPGRADE_KEEP_END=1", "TOPGRADE_INSIDE_TMUX=1", *sys.argv])

    tmux = Tmux(args)
    if not tmux.has_session(SESSION):
        tmux.new_session(SESSION)

    tmux.run_in_session(command)
    subprocess.run(
        tmux.build("kill-window", "-t", f"{SESSION}:dummy"),
        env=tmux._env(),
        capture_output=True,
        check=False,
    )

    if "TMUX" not in os.environ:
        argv = tmux.build("attach", "-t", SESSION)
        env = tmux._env()
        os.execve(argv[0], argv, env if env is not None else dict(os.environ))

    print("Topgrade launched in a new tmux session")
    sys.exit(0)


def run_command(tmux_arguments: str | None, command: str) -> None:
    """Run ``command`` in a new window of the running session."""
    tmux = Tmux(tmux_arguments)
    completed = subprocess.run(
        tmux.build("new-window", "-a", "-t", f"{SESSION}:1", command),
        env=_without_tmux(),
        check=False,
    )
    check_status(completed.returncode)