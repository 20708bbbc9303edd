"""Package upgrades on Termux."""

from __future__ import annotations

from upgrader.terminal import print_separator
from upgrader.utils import CommandRunner, require


def upgrade_packages(runner: CommandRunner, yes: bool, cleanup: bool) -> None:
    pkg = require("pkg")
    print_separator("Termux Packages")
    flags = ["-y"] if yes else []
    runner.run([pkg, "upgrade", *flags])

    if cleanup:
        runner.run([pkg, "clean"])
        apt = require("apt")
        runner.run([apt, "autoremove", *flags])