"""System and package upgrades on FreeBSD."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

from upgrader.terminal import print_separator
from upgrader.utils import CommandRunner, require_option

PKG = "/usr/sbin/pkg"


def upgrade_freebsd(runner: CommandRunner, sudo: Path | None) -> None:
    sudo = require_option(sudo, "No sudo detected")
    print_separator("FreeBSD Update")
    runner.run([sudo, "/usr/sbin/freebsd-update", "fetch", "install"])


def upgrade_packages(runner: CommandRunner, sudo: Path | None) -> None:
    sudo = require_option(sudo, "No sudo detected")
    print_separator("FreeBSD Packages")
    runner.run([sudo, PKG, "upgrade"])


def audit_packages(sudo: Path | None) -> None:
    """Report vulnerable packages; does nothing without sudo."""
    if sudo is None:
        return
    print()
    subprocess.run([os.fspath(sudo), PKG, "audit", "-Fr"], check=False)