"""Running the upgrade on remote hosts over ssh."""

from __future__ import annotations

import subprocess
import sys
from dataclasses import dataclass

from upgrader import tmux
from upgrader.terminal import print_separator
from upgrader.utils import CommandRunner, SkipStep, require


@dataclass(frozen=True)
class SshOptions:
    """Settings for remote upgrades."""

    remote_topgrade_path: str = "topgrade"
    ssh_arguments: str | None = None
    run_in_tmux: bool = False
    open_remotes_in_new_terminal: bool = False
    tmux_arguments: str | None = None


def build_ssh_args(hostname: str, ssh_arguments: str | None, topgrade: str) -> list[str]:
    """Return the ssh arguments that start ``topgrade`` on ``hostname``."""
    extra = ssh_arguments.split() if ssh_arguments is not None else []
    return ["-t", hostname, *extra, "env", f"TOPGRADE_PREFIX={hostname}", "$SHELL", "-lc", topgrade]


def prepare_async_ssh_command(args: list[str]) -> list[str]:
    """Return a full ssh command line that keeps its window open."""
    return ["ssh", *args, "--keep"]


def ssh_step(runner: CommandRunner, hostname: str, options: SshOptions) -> None:
    """Upgrade a remote host."""
    ssh = require("ssh")
    args = build_ssh_args(hostname, options.ssh_arguments, options.remote_topgrade_path)

    if options.run_in_tmux and not runner.dry_run:
        if sys.platform == "win32":
            raise RuntimeError("Tmux execution is only implemented in Unix")
        tmux.run_command(options.tmux_arguments, " ".join(prepare_async_ssh_command(args)))
        raise SkipStep("Remote Topgrade launched in Tmux")

    if options.open_remotes_in_new_terminal and not runner.dry_run and sys.platform == "win32":
        subprocess.Popen(["wt", *prepare_async_ssh_command(args)])
        raise SkipStep("Remote Topgrade launched in an external terminal")

    print_separator(f"Remote ({hostname})")
    print(f"Connecting to {hostname}...")
    runner.run([ssh, *args])