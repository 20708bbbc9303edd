"""Upgrade steps specific to Windows."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from upgrader.powershell import Powershell
from upgrader.terminal import print_separator, print_warning
from upgrader.utils import CommandRunner, ProcessFailed, SkipStep, check_output, require

logger = logging.getLogger(__name__)


def run_chocolatey(runner: CommandRunner, sudo: Path | None, yes: bool) -> None:
    choco = require("choco")
    print_separator("Chocolatey")
    command: list[object] = [sudo, "choco"] if sudo is not None else [choco]
    command += ["upgrade", "all"]
    if yes:
        command.append("--yes")
    runner.run(command)


def run_winget(runner: CommandRunner, enabled: bool) -> None:
    winget = require("winget")
    print_separator("winget")
    if not enabled:
        print_warning(
            "Winget is disabled by default. Enable it by setting enable_winget=true "
            "in the [windows] section in the configuration."
        )
        raise SkipStep("Winget is disabled by default")
    runner.run([winget, "upgrade", "--all"])


def run_scoop(runner: CommandRunner, cleanup: bool) -> None:
    scoop = require("scoop")
    print_separator("Scoop")
    runner.run([scoop, "update"])
    runner.run([scoop, "update", "*"])
    if cleanup:
        runner.run([scoop, "cleanup", "*"])


def parse_wsl_list(output: str) -> list[str]:
    """Return distribution names from ``wsl --list -q`` output."""
    lines = output.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    names = []
    for line in lines:
        if line.endswith("\r"):
            line = line[:-1]
        if line:
            names.append(line.replace("\0", "").replace("\r", ""))
    return names


def get_wsl_distributions(wsl: str | os.PathLike[str]) -> list[str]:
    return parse_wsl_list(check_output([wsl, "--list", "-q"]))


def _upgrade_wsl_distribution(runner: CommandRunner, wsl: Path, dist: str, yes: bool) -> None:
    try:
        topgrade = check_output([wsl, "-d", dist, "bash", "-lc", "which topgrade"]).strip()
    except (ProcessFailed, OSError) as exc:
        raise SkipStep("Could not find Topgrade installed in WSL") from exc
    command: list[object] = [wsl, "-d", dist, "bash", "-c", f"TOPGRADE_PREFIX={dist} exec {topgrade}"]
    if yes:
        command.append("-y")
    runner.run(command)


def run_wsl_topgrade(runner: CommandRunner, yes: bool) -> None:
    """Run the upgrade in every WSL distribution that has it installed."""
    wsl = require("wsl")
    distributions = get_wsl_distributions(wsl)
    logger.debug("WSL distributions: %r", distributions)

    ran = False
    for distribution in distributions:
        try:
            _upgrade_wsl_distribution(runner, wsl, distribution, yes)
        except SkipStep as exc:
            logger.debug("Upgrading %r: %s", distribution, exc)
            continue
        except (ProcessFailed, OSError) as exc:
            logger.debug("Upgrading %r: %s", distribution, exc)
        ran = True

    if not ran:
        raise SkipStep("Could not find Topgrade in any WSL disribution")


def windows_update(runner: CommandRunner, sudo: Path | None, accept_all: bool) -> None:
    """Install Windows updates through PSWindowsUpdate, or UsoClient without it."""
    powershell = Powershell.windows_powershell()
    if powershell.supports_windows_update():
        print_separator("Windows Update")
        powershell.windows_update(runner, sudo, accept_all)
        return

    usoclient = require("UsoClient")
    print_separator("Windows Update")
    print("Running Windows Update. Check the control panel for progress.")
    runner.run([usoclient, "ScanInstallWait"])
    runner.run([usoclient, "StartInstall"])


def reboot() -> None:
    """Restart the machine immediately."""
    try:
        subprocess.Popen(["shutdown", "/R", "/T", "0"])
    except OSError as exc:
        logger.debug("Reboot failed: %s", exc)