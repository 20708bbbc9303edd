"""Running the system upgrade inside Toolbx containers."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from pathlib import Path, PurePosixPath

from upgrader.terminal import print_separator
from upgrader.utils import CommandRunner, ProcessFailed, require

logger = logging.getLogger(__name__)


def parse_toolbox_list(output: str) -> list[str]:
    """Return container names from ``toolbox list --containers`` output."""
    names = []
    # The first line is a header.
    for line in output.splitlines()[1:]:
        words = line.split()
        if len(words) > 1 and words[1]:
            names.append(words[1])
    return names


def list_toolboxes(toolbx: str | os.PathLike[str]) -> list[str]:
    completed = subprocess.run(
        [os.fspath(toolbx), "list", "--containers"], capture_output=True, check=False
    )
    return parse_toolbox_list(completed.stdout.decode("utf-8"))


def toolbox_command(toolbox: str, executable: str, yes: bool) -> list[str]:
    """Return the toolbox arguments that run the system step inside ``toolbox``."""
    args = [
        "run",
        "-c",
        toolbox,
        "env",
        f"TOPGRADE_PREFIX='Toolbx {toolbox}'",
        executable,
        "--only",
        "system",
    ]
    if yes:
        args.append("--yes")
    return args


def _host_path() -> str:
    exe = Path(sys.argv[0]).resolve()
    return str(PurePosixPath("/run/host", *exe.parts[1:]))


def run_toolbx(runner: CommandRunner, yes: bool = False) -> None:
    toolbx = require("toolbox")
    print_separator("Toolbx")
    toolboxes = list_toolboxes(toolbx)
    logger.debug("Toolboxes to inspect: %r", toolboxes)

    executable = _host_path()
    for toolbox in toolboxes:
        try:
            runner.run([toolbx, *toolbox_command(toolbox, executable, yes)])
        except ProcessFailed as exc:
            logger.debug("Upgrading toolbox %s failed: %s", toolbox, exc)