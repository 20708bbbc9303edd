"""Upgrade steps shared by Unix-like systems."""

from __future__ import annotations

import enum
import logging
import os
import platform
import subprocess
import sys
from pathlib import Path

from upgrader.linux import Distribution
from upgrader.terminal import print_separator
from upgrader.utils import (
    CommandRunner,
    ProcessFailed,
    SkipStep,
    UnknownLinuxDistribution,
    check_output,
    require,
    require_option,
    require_path,
)

logger = logging.getLogger(__name__)

INTEL_BREW = "/usr/local/bin/brew"
ARM_BREW = "/opt/homebrew/bin/brew"

_ARM_MACHINES = ("aarch64", "arm64")
_INTEL_MACHINES = ("x86_64", "amd64")


def both_brews_exist() -> bool:
    """Tell whether both the Intel and the ARM Homebrew are installed."""
    return Path(INTEL_BREW).exists() and Path(ARM_BREW).exists()


class BrewVariant(enum.Enum):
    PATH = "path"
    MAC_INTEL = "mac_intel"
    MAC_ARM = "mac_arm"

    def binary_name(self) -> str:
        if self is BrewVariant.MAC_INTEL:
            return INTEL_BREW
        if self is BrewVariant.MAC_ARM:
            return ARM_BREW
        return "brew"

    def step_title(self) -> str:
        both = both_brews_exist()
        if self is BrewVariant.MAC_ARM and both:
            return "Brew (ARM)"
        if self is BrewVariant.MAC_INTEL and both:
            return "Brew (Intel)"
        return "Brew"

    def command(self, machine: str | None = None) -> list[str]:
        """Return the command prefix that runs this brew on ``machine``."""
        machine = (machine if machine is not None else platform.machine()).lower()
        if self is BrewVariant.MAC_INTEL and machine in _ARM_MACHINES:
            return ["arch", "-x86_64", self.binary_name()]
        if self is BrewVariant.MAC_ARM and machine in _INTEL_MACHINES:
            return ["arch", "-arm64e", self.binary_name()]
        return [self.binary_name()]


def _is_macos_custom(binary: Path) -> bool:
    return str(binary) not in (INTEL_BREW, ARM_BREW)


def _check_custom_brew(variant: BrewVariant, binary: Path) -> None:
    if sys.platform == "darwin" and variant is BrewVariant.PATH and not _is_macos_custom(binary):
        raise SkipStep("Not a custom brew for macOS")


def run_fisher(runner: CommandRunner, home: str | os.PathLike[str]) -> None:
    fish = require("fish")
    if "fisher_path" not in os.environ:
        require_path(Path(home, ".config/fish/functions/fisher.fish"))
    print_separator("Fisher")
    runner.run([fish, "-c", "fisher update"])


def run_bashit(runner: CommandRunner, home: str | os.PathLike[str], branch: str) -> None:
    require_path(Path(home, ".bash_it"))
    print_separator("Bash-it")
    runner.run(["bash", "-lic", f"bash-it update {branch}"])


def run_oh_my_fish(runner: CommandRunner, home: str | os.PathLike[str]) -> None:
    fish = require("fish")
    require_path(Path(home, ".local/share/omf/pkg/omf/functions/omf.fish"))
    print_separator("oh-my-fish")
    runner.run([fish, "-c", "omf update"])


def run_pkgin(runner: CommandRunner, sudo: Path | None, yes: bool) -> None:
    pkgin = require("pkgin")
    sudo = require_option(sudo, "sudo is not installed")
    flags = ["-y"] if yes else []
    runner.run([sudo, pkgin, "update", *flags])
    runner.run([sudo, pkgin, "upgrade", *flags])


def run_fish_plug(runner: CommandRunner, home: str | os.PathLike[str]) -> None:
    fish = require("fish")
    require_path(Path(home, ".local/share/fish/plug/kidonng/fish-plug/functions/plug.fish"))
    print_separator("fish-plug")
    runner.run([fish, "-c", "plug update"])


def upgrade_gnome_extensions(runner: CommandRunner) -> None:
    gdbus = require("gdbus")
    desktop = os.environ.get("XDG_CURRENT_DESKTOP")
    require_option(
        desktop if desktop is not None and "GNOME" in desktop else None,
        "Desktop doest not appear to be gnome",
    )
    output = check_output(
        [
            "gdbus",
            "call",
            "--session",
            "--dest",
            "org.freedesktop.DBus",
            "--object-path",
            "/org/freedesktop/DBus",
            "--method",
            "org.freedesktop.DBus.ListActivatableNames",
        ]
    )
    logger.debug("Checking for gnome extensions: %s", output)
    if "org.gnome.Shell.Extensions" not in output:
        raise SkipStep("Gnome shell extensions are unregistered in DBus")

    print_separator("Gnome Shell extensions")
    runner.run(
        [
            gdbus,
            "call",
            "--session",
            "--dest",
            "org.gnome.Shell.Extensions",
            "--object-path",
            "/org/gnome/Shell/Extensions",
            "--method",
            "org.gnome.Shell.Extensions.CheckForUpdates",
        ]
    )


def run_brew_formula(runner: CommandRunner, variant: BrewVariant, cleanup: bool) -> None:
    binary = require(variant.binary_name())
    _check_custom_brew(variant, binary)
    print_separator(variant.step_title())
    brew = variant.command()
    runner.run([*brew, "update"])
    runner.run([*brew, "upgrade", "--ignore-pinned", "--formula"])
    if cleanup:
        runner.run([*brew, "cleanup"])


def run_brew_cask(runner: CommandRunner, variant: BrewVariant, cleanup: bool, greedy: bool) -> None:
    binary = require(variant.binary_name())
    _check_custom_brew(variant, binary)
    print_separator(f"{variant.step_title()} - Cask")
    brew = variant.command()

    repository = check_output([*brew, "--repository", "buo/cask-upgrade"])
    if Path(repository.strip()).exists():
        args = ["cu", "-y", *(["-a"] if greedy else [])]
    else:
        args = ["upgrade", "--cask", *(["--greedy"] if greedy else [])]

    runner.run([*brew, *args])
    if cleanup:
        runner.run([*brew, "cleanup"])


def _on_nixos() -> bool:
    if not sys.platform.startswith("linux"):
        return False
    try:
        return Distribution.detect() is Distribution.NIXOS
    except (UnknownLinuxDistribution, OSError):
        return False


def run_nix(runner: CommandRunner, sudo: Path | None) -> None:
    nix = require("nix")
    nix_channel = require("nix-channel")
    nix_env = require("nix-env")

    try:
        output = check_output([nix_env, "--query", "nix"])
        logger.debug("nix-env output: %r", output)
        should_self_upgrade = True
    except (ProcessFailed, OSError) as exc:
        logger.debug("nix-env output: %s", exc)
        should_self_upgrade = False

    print_separator("Nix")

    multi_user = nix.stat().st_uid == 0
    logger.debug("Multi user nix: %s", multi_user)

    if _on_nixos():
        raise SkipStep("Nix on NixOS must be upgraded via nixos-rebuild switch")

    if should_self_upgrade:
        if multi_user:
            elevated = require_option(sudo, "Sudo is required for this operation")
            runner.run([elevated, nix, "upgrade-nix"])
        else:
            runner.run([nix, "upgrade-nix"])

    runner.run([nix_channel, "--update"])
    runner.run([nix_env, "--upgrade"])


def run_yadm(runner: CommandRunner) -> None:
    yadm = require("yadm")
    print_separator("yadm")
    runner.run([yadm, "pull"])


def run_asdf(runner: CommandRunner) -> None:
    asdf = require("asdf")
    print_separator("asdf")
    runner.run([asdf, "plugin", "update", "--all"])


def run_home_manager(runner: CommandRunner) -> None:
    home_manager = require("home-manager")
    print_separator("home-manager")
    runner.run([home_manager, "switch"])


def run_tldr(runner: CommandRunner) -> None:
    tldr = require("tldr")
    print_separator("TLDR")
    runner.run([tldr, "--update"])


def run_pearl(runner: CommandRunner) -> None:
    pearl = require("pearl")
    print_separator("pearl")
    runner.run([pearl, "update"])


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def read_sdkman_selfupdate(config_path: str | os.PathLike[str]) -> bool:
    """Tell whether the SDKMAN configuration enables self-update."""
    for raw in Path(config_path).read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if line.startswith("["):
            break
        if not line or line[0] in "#;":
            continue
        key, sep, value = line.partition("=")
        if sep and key.strip() == "sdkman_selfupdate_feature":
            return _unquote(value.strip()) == "true"
    return False


def run_sdkman(runner: CommandRunner, home: str | os.PathLike[str], cleanup: bool) -> None:
    bash = require("bash")
    sdkman_dir = Path(os.environ["SDKMAN_DIR"]) if "SDKMAN_DIR" in os.environ else Path(home, ".sdkman")
    init_path = require_path(sdkman_dir / "bin" / "sdkman-init.sh")

    print_separator("SDKMAN!")

    config_path = require_path(sdkman_dir / "etc" / "config")
    commands = []
    if read_sdkman_selfupdate(config_path):
        commands.append("sdk selfupdate")
    commands += ["sdk update", "sdk upgrade"]
    if cleanup:
        commands += ["sdk flush archives", "sdk flush temp"]

    for command in commands:
        runner.run([bash, "-c", f"source {init_path} && {command}"])


def reboot() -> None:
    """Reboot the machine."""
    print("Rebooting...", end="", flush=True)
    subprocess.run(["sudo", "reboot"], check=True)