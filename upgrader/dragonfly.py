"""Package upgrades on DragonFly BSD."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

from upgrader.terminal import print_separator
from upgrader.utils import CommandRunner, require_option

PKG = "/usr/local/sbin/pkg"


def upgrade_packages(runner: CommandRunner, sudo: Path | None) -> None:
    sudo = require_option(sudo, "No sudo detected")
    print_separator("DrgaonFly BSD Packages")
    runner.run([sudo, PKG, "upgrade"])


def audit_packages(sudo: Path | None) -> None:
    """Report vulnerable packages; does nothing without sudo."""
    if sudo is None:
        return
    print()
    subprocess.run([os.fspath(sudo), PKG, "audit", "-Fr"], check=False)