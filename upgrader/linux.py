"""System upgrades and extra steps for Linux distributions."""

from __future__ import annotations

import dataclasses
import enum
import logging
import os
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from upgrader import archlinux
from upgrader.archlinux import ArchOptions
from upgrader.terminal import print_separator, print_warning
from upgrader.utils import (
    CommandRunner,
    SkipStep,
    UnknownLinuxDistribution,
    check_output,
    require,
    require_option,
    require_path,
    which,
)

logger = logging.getLogger(__name__)

OS_RELEASE_PATH = "/etc/os-release"
BEDROCK_PATH = "/bedrock"
_NO_SUDO = "No sudo detected. Skipping system upgrade"


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return re.sub(r"\\(.)", r"\1", value[1:-1])
    return value


def parse_os_release(text: str) -> dict[str, str]:
    """Parse the KEY=value lines of an os-release file."""
    fields: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line[0] in "#;":
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        fields[key.strip()] = _unquote(value.strip())
    return fields


@dataclass(frozen=True)
class SystemOptions:
    """Settings that steer a Linux system upgrade."""

    yes: bool = False
    cleanup: bool = False
    rpm_ostree: bool = False
    redhat_distro_sync: bool = False
    dnf_arguments: str | None = None
    apt_arguments: str | None = None
    emerge_sync_flags: str | None = None
    emerge_update_flags: str | None = None
    arch: ArchOptions = field(default_factory=ArchOptions)

    def arch_options(self) -> ArchOptions:
        return dataclasses.replace(self.arch, yes=self.yes, cleanup=self.cleanup)


_BY_ID = {
    "alpine": "ALPINE",
    "centos": "CENTOS",
    "rhel": "CENTOS",
    "ol": "CENTOS",
    "clear-linux-os": "CLEAR_LINUX",
    "fedora": "FEDORA",
    "void": "VOID",
    "debian": "DEBIAN",
    "pureos": "DEBIAN",
    "arch": "ARCH",
    "anarchy": "ARCH",
    "manjaro-arm": "ARCH",
    "garuda": "ARCH",
    "artix": "ARCH",
    "solus": "SOLUS",
    "gentoo": "GENTOO",
    "exherbo": "EXHERBO",
    "nixos": "NIXOS",
    "neon": "KDE_NEON",
}

_BY_ID_LIKE = (
    (("debian", "ubuntu"), "DEBIAN"),
    (("centos",), "CENTOS"),
    (("suse",), "SUSE"),
    (("arch", "archlinux"), "ARCH"),
    (("alpine",), "ALPINE"),
    (("fedora",), "FEDORA"),
)


class Distribution(enum.Enum):
    ALPINE = "alpine"
    ARCH = "arch"
    BEDROCK = "bedrock"
    CENTOS = "centos"
    CLEAR_LINUX = "clearlinux"
    FEDORA = "fedora"
    DEBIAN = "debian"
    GENTOO = "gentoo"
    SUSE = "suse"
    VOID = "void"
    SOLUS = "solus"
    EXHERBO = "exherbo"
    NIXOS = "nixos"
    KDE_NEON = "neon"

    @classmethod
    def from_os_release(cls, fields: dict[str, str]) -> Distribution:
        """Identify the distribution from parsed os-release fields."""
        name = _BY_ID.get(fields.get("ID", ""))
        if name is not None:
            return cls[name]
        id_like = fields.get("ID_LIKE")
        if id_like is not None:
            words = id_like.split()
            for candidates, member in _BY_ID_LIKE:
                if any(candidate in words for candidate in candidates):
                    return cls[member]
        raise UnknownLinuxDistribution()

    @classmethod
    def detect(
        cls,
        os_release_path: str | os.PathLike[str] = OS_RELEASE_PATH,
        bedrock_path: str | os.PathLike[str] = BEDROCK_PATH,
    ) -> Distribution:
        """Detect the running distribution."""
        if Path(bedrock_path).exists():
            return cls.BEDROCK
        release = Path(os_release_path)
        if release.exists():
            return cls.from_os_release(parse_os_release(release.read_text(encoding="utf-8")))
        raise UnknownLinuxDistribution()

    def upgrade(self, runner: CommandRunner, options: SystemOptions, sudo: Path | None) -> None:
        """Run the system upgrade for this distribution."""
        print_separator("System update")
        _UPGRADERS[self](runner, options, sudo)

    def show_summary(self) -> None:
        if self is Distribution.ARCH:
            archlinux.show_pacnew()

    def redhat_based(self) -> bool:
        return self in (Distribution.CENTOS, Distribution.FEDORA)


def _upgrade_arch(runner: CommandRunner, options: SystemOptions, sudo: Path | None) -> None:
    archlinux.upgrade_arch_linux(runner, options.arch_options(), sudo)


def _update_bedrock(runner: CommandRunner, options: SystemOptions, sudo: Path | None) -> None:
    require_option(sudo, "Sudo required")
    output = subprocess.run(["brl", "list"], capture_output=True, check=False)
    logger.debug("brl list: %r %r", output.stdout, output.stderr)
    for distribution in output.stdout.decode("utf-8").strip().split("\n"):
        logger.debug("Bedrock distribution %s", distribution)
        if distribution == "arch":
            _upgrade_arch(runner, options, sudo)
        elif distribution in ("debian", "ubuntu"):
            _upgrade_debian(runner, options, sudo)
        elif distribution in ("centos", "fedora"):
            _upgrade_redhat(runner, options, sudo)
        elif distribution == "bedrock":
            _upgrade_bedrock_strata(runner, options, sudo)
        else:
            logger.warning("Unknown distribution %s", distribution)


def is_wsl() -> bool:
    """Tell whether the kernel is a WSL kernel."""
    output = check_output(["uname", "-r"])
    logger.debug("Uname output: %s", output)
    return "microsoft" in output


def _upgrade_alpine(runner: CommandRunner, options: SystemOptions, sudo: Path | None) -> None:
    apk = require("apk")
    sudo = require_option(sudo, "Sudo required")
    runner.run([sudo, apk, "update"])
    runner.run([sudo, apk, "upgrade"])


def _upgrade_redhat(runner: CommandRunner, options: SystemOptions, sudo: Path | None) -> None:
    ostree = which("rpm-ostree")
    if ostree is not None and options.rpm_ostree:
        runner.run([ostree, "upgrade"])
        return
    if sudo is None:
        print_warning(_NO_SUDO)
        return
    command: list[object] = [
        sudo,
        which("dnf") or Path("yum"),
        "distro-sync" if options.redhat_distro_sync else "upgrade",
    ]
    if options.dnf_arguments is not None:
        command += options.dnf_arguments.split()
    if options.yes:
        command.append("-y")
    runner.run(command)


def _upgrade_bedrock_strata(runner: CommandRunner, options: SystemOptions, sudo: Path | None) -> None:
    if sudo is None:
        print_warning(_NO_SUDO)
        return
    runner.run([sudo, "brl", "update"])


def _upgrade_suse(runner: CommandRunner, options: SystemOptions, sudo: Path | None) -> None:
    if sudo is None:
        print_warning(_NO_SUDO)
        return
    runner.run([sudo, "zypper", "refresh"])
    runner.run([sudo, "zypper", "dist-upgrade"])


def _upgrade_void(runner: CommandRunner, options: SystemOptions, sudo: Path | None) -> None:
    if sudo is None:
        print_warning(_NO_SUDO)
        return
    yes_flags = ["-y"] if options.yes else []
    runner.run([sudo, "xbps-install", "-Su", "xbps", *yes_flags])
    runner.run([sudo, "xbps-install", "-u", *yes_flags])


def _upgrade_gentoo(runner: CommandRunner, options: SystemOptions, sudo: Path | None) -> None:
    if sudo is None:
        print_warning(_NO_SUDO)
        return
    layman = which("layman")
    if layman is not None:
        runner.run([sudo, layman, "-s", "ALL"])

    print("Syncing portage")
    sync_flags = options.emerge_sync_flags.split() if options.emerge_sync_flags is not None else ["-q"]
    runner.run([sudo, "emerge", "--sync", *sync_flags])

    eix_update = which("eix-update")
    if eix_update is not None:
        runner.run([sudo, eix_update])

    update_flags = (
        options.emerge_update_flags.split()
        if options.emerge_update_flags is not None
        else ["-uDNa", "--with-bdeps=y", "world"]
    )
    runner.run([sudo, "emerge", *update_flags])


def _upgrade_debian(runner: CommandRunner, options: SystemOptions, sudo: Path | None) -> None:
    if sudo is None:
        print_warning(_NO_SUDO)
        return
    apt = which("apt-fast") or which("nala") or Path("apt-get")
    is_nala = apt.name == "nala"
    if not is_nala:
        runner.run([sudo, apt, "update"])

    yes_flags = ["-y"] if options.yes else []
    command: list[object] = [sudo, apt, "upgrade" if is_nala else "dist-upgrade", *yes_flags]
    if options.apt_arguments is not None:
        command += options.apt_arguments.split()
    runner.run(command)

    if options.cleanup:
        runner.run([sudo, apt, "clean"])
        runner.run([sudo, apt, "autoremove", *yes_flags])


def _execute_elevated(sudo: Path | None, executable: Path) -> list[object]:
    return [require_option(sudo, "Sudo is required for this operation"), executable]


def run_deb_get(runner: CommandRunner, sudo: Path | None, cleanup: bool) -> None:
    deb_get = require("deb-get")
    print_separator("deb-get")
    runner.run([*_execute_elevated(sudo, deb_get), "upgrade"])
    if cleanup:
        runner.run([*_execute_elevated(sudo, deb_get), "clean"])


def _upgrade_solus(runner: CommandRunner, options: SystemOptions, sudo: Path | None) -> None:
    if sudo is None:
        print_warning(_NO_SUDO)
        return
    runner.run([sudo, "eopkg", "upgrade"])


def run_pacstall(runner: CommandRunner) -> None:
    pacstall = require("pacstall")
    print_separator("Pacstall")
    runner.run([pacstall, "-U"])
    runner.run([pacstall, "-Up"])


def _upgrade_clearlinux(runner: CommandRunner, options: SystemOptions, sudo: Path | None) -> None:
    if sudo is None:
        print_warning(_NO_SUDO)
        return
    runner.run([sudo, "swupd", "update"])


def _upgrade_exherbo(runner: CommandRunner, options: SystemOptions, sudo: Path | None) -> None:
    if sudo is None:
        print_warning(_NO_SUDO)
        return
    runner.run([sudo, "cave", "sync"])
    runner.run([sudo, "cave", "resolve", "world", "-c1", "-Cs", "-km", "-Km", "-x"])
    if options.cleanup:
        runner.run([sudo, "cave", "purge", "-x"])
    runner.run([sudo, "cave", "fix-linkage", "-x", "--", "-Cs"])
    runner.run([sudo, "eclectic", "config", "interactive"])


def _upgrade_nixos(runner: CommandRunner, options: SystemOptions, sudo: Path | None) -> None:
    if sudo is None:
        print_warning(_NO_SUDO)
        return
    runner.run([sudo, "/run/current-system/sw/bin/nixos-rebuild", "switch", "--upgrade"])
    if options.cleanup:
        runner.run([sudo, "/run/current-system/sw/bin/nix-collect-garbage", "-d"])


def _upgrade_neon(runner: CommandRunner, options: SystemOptions, sudo: Path | None) -> None:
    # KDE neon uses pkcon; running apt directly there is an error.
    if sudo is None:
        return
    pkcon = require("pkcon")
    runner.run([sudo, pkcon, "refresh"])
    command: list[object] = [sudo, pkcon, "update"]
    if options.yes:
        command.append("-y")
    if options.cleanup:
        command.append("--autoremove")
    # pkcon exits with 5 when nothing useful was done.
    runner.run(command, codes=[5])


_UPGRADERS = {
    Distribution.ALPINE: _upgrade_alpine,
    Distribution.ARCH: _upgrade_arch,
    Distribution.CENTOS: _upgrade_redhat,
    Distribution.FEDORA: _upgrade_redhat,
    Distribution.CLEAR_LINUX: _upgrade_clearlinux,
    Distribution.DEBIAN: _upgrade_debian,
    Distribution.GENTOO: _upgrade_gentoo,
    Distribution.SUSE: _upgrade_suse,
    Distribution.VOID: _upgrade_void,
    Distribution.SOLUS: _upgrade_solus,
    Distribution.EXHERBO: _upgrade_exherbo,
    Distribution.NIXOS: _upgrade_nixos,
    Distribution.KDE_NEON: _upgrade_neon,
    Distribution.BEDROCK: _update_bedrock,
}


def run_needrestart(runner: CommandRunner, sudo: Path | None) -> None:
    sudo = require_option(sudo, "sudo is not installed")
    needrestart = require("needrestart")
    if Distribution.detect().redhat_based():
        raise SkipStep("needrestart will be ran by the package manager")
    print_separator("Check for needed restarts")
    runner.run([sudo, needrestart])


def run_fwupdmgr(runner: CommandRunner, firmware_upgrade: bool, yes: bool) -> None:
    fwupdmgr = require("fwupdmgr")
    if is_wsl():
        raise SkipStep("Should not run in WSL")
    print_separator("Firmware upgrades")
    runner.run([fwupdmgr, "refresh"], codes=[2])
    if firmware_upgrade:
        command: list[object] = [fwupdmgr, "update", *(["-y"] if yes else [])]
    else:
        command = [fwupdmgr, "get-updates"]
    runner.run(command, codes=[2])


def flatpak_update(runner: CommandRunner, sudo: Path | None, cleanup: bool, use_sudo: bool) -> None:
    flatpak = require("flatpak")
    sudo = require_option(sudo, "sudo is not installed")
    print_separator("Flatpak User Packages")
    runner.run([flatpak, "update", "--user", "-y"])
    if cleanup:
        runner.run([flatpak, "uninstall", "--user", "--unused"])

    print_separator("Flatpak System Packages")
    prefix: list[object] = [sudo, flatpak] if use_sudo or "SSH_CLIENT" in os.environ else [flatpak]
    runner.run([*prefix, "update", "--system", "-y"])
    if cleanup:
        runner.run([*prefix, "uninstall", "--system", "--unused"])


def run_snap(runner: CommandRunner, sudo: Path | None) -> None:
    sudo = require_option(sudo, "sudo is not installed")
    snap = require("snap")
    if not Path("/var/snapd.socket").exists() and not Path("/run/snapd.socket").exists():
        raise SkipStep("Snapd socket does not exist")
    print_separator("snap")
    runner.run([sudo, snap, "refresh"])


def run_pihole_update(runner: CommandRunner, sudo: Path | None) -> None:
    sudo = require_option(sudo, "sudo is not installed")
    pihole = require("pihole")
    require_path("/opt/pihole/update.sh")
    print_separator("pihole")
    runner.run([sudo, pihole, "-up"])


def run_config_update(runner: CommandRunner, sudo: Path | None, yes: bool) -> None:
    sudo = require_option(sudo, "sudo is not installed")
    if yes:
        raise SkipStep("Skipped in --yes")

    etc_update = which("etc-update")
    if etc_update is not None:
        print_separator("Configuration update")
        runner.run([sudo, etc_update])
        return

    pacdiff = which("pacdiff")
    if pacdiff is not None:
        if "DIFFPROG" not in os.environ:
            require("vim")
        print_separator("Configuration update")
        runner.run(_execute_elevated(sudo, pacdiff))