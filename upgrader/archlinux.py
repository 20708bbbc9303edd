"""System upgrades on Arch Linux and its derivatives."""

from __future__ import annotations

import enum
import os
import subprocess
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from upgrader.utils import CommandRunner, NoPackageManager, which


def execution_path() -> str:
    """Return PATH with /usr/bin put first."""
    return "/usr/bin:" + os.environ["PATH"]


class ArchManagerKind(enum.Enum):
    AUTODETECT = "autodetect"
    TRIZEN = "trizen"
    PARU = "paru"
    YAY = "yay"
    PACMAN = "pacman"
    PIKAUR = "pikaur"
    PAMAC = "pamac"


@dataclass(frozen=True)
class ArchOptions:
    """Settings that steer an Arch upgrade."""

    yes: bool = False
    cleanup: bool = False
    show_arch_news: bool = False
    manager: ArchManagerKind = ArchManagerKind.AUTODETECT
    yay_arguments: str = ""
    trizen_arguments: str = ""
    pikaur_arguments: str = ""
    pamac_arguments: str = ""


class ArchPackageManager(Protocol):
    def upgrade(self, runner: CommandRunner, options: ArchOptions) -> None: ...


def _noconfirm(options: ArchOptions, flag: str = "--noconfirm") -> list[str]:
    return [flag] if options.yes else []


@dataclass(frozen=True)
class YayParu:
    executable: Path
    pacman: Path

    @classmethod
    def find(cls, exec_name: str, pacman: Path) -> YayParu | None:
        executable = which(exec_name)
        return cls(executable, Path(pacman)) if executable is not None else None

    def upgrade(self, runner: CommandRunner, options: ArchOptions) -> None:
        if options.show_arch_news:
            try:
                subprocess.run([os.fspath(self.executable), "-Pw"], check=False)
            except OSError:
                pass
        runner.run(
            [self.executable, "--pacman", self.pacman, "-Syu", *options.yay_arguments.split(), *_noconfirm(options)],
            env={"PATH": execution_path()},
        )
        if options.cleanup:
            runner.run([self.executable, "--pacman", self.pacman, "-Scc", *_noconfirm(options)])


@dataclass(frozen=True)
class Trizen:
    executable: Path

    @classmethod
    def find(cls) -> Trizen | None:
        executable = which("trizen")
        return cls(executable) if executable is not None else None

    def upgrade(self, runner: CommandRunner, options: ArchOptions) -> None:
        runner.run(
            [self.executable, "-Syu", *options.trizen_arguments.split(), *_noconfirm(options)],
            env={"PATH": execution_path()},
        )
        if options.cleanup:
            runner.run([self.executable, "-Sc", *_noconfirm(options)])


@dataclass(frozen=True)
class Pacman:
    sudo: Path
    executable: Path

    @classmethod
    def find(cls, sudo: Path | None) -> Pacman | None:
        if sudo is None:
            return None
        return cls(sudo=Path(sudo), executable=which("powerpill") or Path("pacman"))

    def upgrade(self, runner: CommandRunner, options: ArchOptions) -> None:
        runner.run(
            [self.sudo, self.executable, "-Syu", *_noconfirm(options)],
            env={"PATH": execution_path()},
        )
        if options.cleanup:
            runner.run([self.sudo, self.executable, "-Scc", *_noconfirm(options)])


@dataclass(frozen=True)
class Pikaur:
    executable: Path

    @classmethod
    def find(cls) -> Pikaur | None:
        executable = which("pikaur")
        return cls(executable) if executable is not None else None

    def upgrade(self, runner: CommandRunner, options: ArchOptions) -> None:
        runner.run(
            [self.executable, "-Syu", *options.pikaur_arguments.split(), *_noconfirm(options)],
            env={"PATH": execution_path()},
        )
        if options.cleanup:
            runner.run([self.executable, "-Sc", *_noconfirm(options)])


@dataclass(frozen=True)
class Pamac:
    executable: Path

    @classmethod
    def find(cls) -> Pamac | None:
        executable = which("pamac")
        return cls(executable) if executable is not None else None

    def upgrade(self, runner: CommandRunner, options: ArchOptions) -> None:
        runner.run(
            [self.executable, "upgrade", *options.pamac_arguments.split(), *_noconfirm(options, "--no-confirm")],
            env={"PATH": execution_path()},
        )
        if options.cleanup:
            runner.run([self.executable, "clean", *_noconfirm(options, "--no-confirm")])


def get_arch_package_manager(
    kind: ArchManagerKind, sudo: Path | None
) -> ArchPackageManager | None:
    """Pick the package manager for ``kind``; autodetection tries helpers first."""
    pacman = which("powerpill") or Path("pacman")
    if kind is ArchManagerKind.AUTODETECT:
        finders = (
            lambda: YayParu.find("paru", pacman),
            lambda: YayParu.find("yay", pacman),
            Trizen.find,
            Pikaur.find,
            Pamac.find,
            lambda: Pacman.find(sudo),
        )
        return next((manager for manager in (find() for find in finders) if manager is not None), None)
    if kind is ArchManagerKind.TRIZEN:
        return Trizen.find()
    if kind is ArchManagerKind.PARU:
        return YayParu.find("paru", pacman)
    if kind is ArchManagerKind.YAY:
        return YayParu.find("yay", pacman)
    if kind is ArchManagerKind.PACMAN:
        return Pacman.find(sudo)
    if kind is ArchManagerKind.PIKAUR:
        return Pikaur.find()
    return Pamac.find()


def upgrade_arch_linux(runner: CommandRunner, options: ArchOptions, sudo: Path | None) -> None:
    """Upgrade the system with the configured package manager."""
    manager = get_arch_package_manager(options.manager, sudo)
    if manager is None:
        raise NoPackageManager()
    manager.upgrade(runner, options)


def find_pacnew(root: str | os.PathLike[str] = "/etc") -> Iterator[Path]:
    """Yield .pacnew and .pacsave entries under ``root``."""
    for directory, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(dirnames + filenames):
            path = Path(directory, name)
            if path.suffix in (".pacnew", ".pacsave"):
                yield path


def show_pacnew(root: str | os.PathLike[str] = "/etc") -> None:
    """Print the pacman backup files found under ``root``."""
    found = list(find_pacnew(root))
    if found:
        print("\nPacman backup configuration files found:")
        for path in found:
            print(path)