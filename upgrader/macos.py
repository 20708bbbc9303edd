"""Upgrade steps specific to macOS."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from upgrader.terminal import print_separator, prompt_yesno
from upgrader.utils import CommandRunner, ProcessFailed, check_output, check_status, require, require_option

logger = logging.getLogger(__name__)


def run_macports(runner: CommandRunner, sudo: Path | None, cleanup: bool) -> None:
    require("port")
    sudo = require_option(sudo, "sudo is not installed")
    print_separator("MacPorts")
    runner.run([sudo, "port", "selfupdate"])
    runner.run([sudo, "port", "-u", "upgrade", "outdated"])
    if cleanup:
        runner.run([sudo, "port", "-N", "reclaim"])


def run_mas(runner: CommandRunner) -> None:
    mas = require("mas")
    print_separator("macOS App Store")
    runner.run([mas, "upgrade"])


def system_update_available() -> bool:
    """Ask softwareupdate whether new software is available."""
    output = subprocess.run(["softwareupdate", "--list"], capture_output=True, check=False)
    logger.debug("%r", output)
    check_status(output.returncode)
    text = output.stderr.decode("utf-8")
    logger.debug("%r", text)
    return "No new software available" not in text


def upgrade_macos(runner: CommandRunner, yes: bool) -> None:
    print_separator("macOS system update")

    should_ask = not yes or runner.dry_run
    if should_ask:
        print("Finding available software")
        if not system_update_available():
            print("No new software available.")
            return
        if not prompt_yesno("A system update is available. Do you wish to install it?"):
            return
        print()

    command = ["softwareupdate", "--install", "--all"]
    if should_ask:
        command.append("--no-scan")
    runner.run(command)


def run_sparkle(runner: CommandRunner, applications_dir: str | os.PathLike[str] = "/Applications") -> None:
    sparkle = require("sparkle")
    print_separator("Sparkle")

    for application in sorted(Path(applications_dir).iterdir()):
        try:
            check_output([sparkle, "--probe", "--application", application])
        except (ProcessFailed, OSError):
            continue
        try:
            runner.run([sparkle, "bundle", "--check-immediately", "--application", application])
        except ProcessFailed as exc:
            logger.debug("Sparkle update of %s failed: %s", application, exc)