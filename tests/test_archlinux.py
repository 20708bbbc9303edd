import io
import stat
from pathlib import Path

import pytest

from upgrader.archlinux import (
    ArchManagerKind,
    ArchOptions,
    Pacman,
    Pamac,
    Pikaur,
    Trizen,
    YayParu,
    execution_path,
    find_pacnew,
    get_arch_package_manager,
    show_pacnew,
    upgrade_arch_linux,
)
from upgrader.utils import CommandRunner, NoPackageManager


def _make_exe(directory: Path, name: str) -> Path:
    path = directory / name
    path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def bin_dir(tmp_path, monkeypatch):
    directory = tmp_path / "bin"
    directory.mkdir()
    monkeypatch.setenv("PATH", str(directory))
    return directory


@pytest.fixture
def runner():
    return CommandRunner(dry_run=True, stream=io.StringIO())


def test_execution_path(monkeypatch):
    monkeypatch.setenv("PATH", "/opt/bin")
    assert execution_path() == "/usr/bin:/opt/bin"


def test_yay_upgrade_with_cleanup(bin_dir, runner):
    manager = YayParu(Path("yay"), Path("pacman"))
    manager.upgrade(runner, ArchOptions(yes=True, cleanup=True, yay_arguments="--devel"))
    assert runner.executed == [
        ("yay", "--pacman", "pacman", "-Syu", "--devel", "--noconfirm"),
        ("yay", "--pacman", "pacman", "-Scc", "--noconfirm"),
    ]


def test_trizen_and_pikaur_without_yes(bin_dir, runner):
    Trizen(Path("trizen")).upgrade(runner, ArchOptions(cleanup=True))
    Pikaur(Path("pikaur")).upgrade(runner, ArchOptions())
    assert runner.executed == [
        ("trizen", "-Syu"),
        ("trizen", "-Sc"),
        ("pikaur", "-Syu"),
    ]


def test_pamac_uses_no_confirm(bin_dir, runner):
    Pamac(Path("pamac")).upgrade(runner, ArchOptions(yes=True, cleanup=True))
    assert runner.executed == [
        ("pamac", "upgrade", "--no-confirm"),
        ("pamac", "clean", "--no-confirm"),
    ]


def test_pacman_goes_through_sudo(bin_dir, runner):
    Pacman(sudo=Path("sudo"), executable=Path("pacman")).upgrade(runner, ArchOptions(yes=True))
    assert runner.executed == [("sudo", "pacman", "-Syu", "--noconfirm")]


def test_autodetect_prefers_paru(bin_dir):
    _make_exe(bin_dir, "yay")
    paru = _make_exe(bin_dir, "paru")
    manager = get_arch_package_manager(ArchManagerKind.AUTODETECT, None)
    assert isinstance(manager, YayParu)
    assert manager.executable == paru


def test_autodetect_falls_back_to_pacman(bin_dir):
    manager = get_arch_package_manager(ArchManagerKind.AUTODETECT, Path("sudo"))
    assert manager == Pacman(sudo=Path("sudo"), executable=Path("pacman"))


def test_powerpill_replaces_pacman(bin_dir):
    powerpill = _make_exe(bin_dir, "powerpill")
    manager = get_arch_package_manager(ArchManagerKind.PACMAN, Path("sudo"))
    assert manager.executable == powerpill


def test_explicit_kind_missing_returns_none(bin_dir):
    _make_exe(bin_dir, "paru")
    assert get_arch_package_manager(ArchManagerKind.TRIZEN, Path("sudo")) is None
    assert get_arch_package_manager(ArchManagerKind.PACMAN, None) is None


def test_upgrade_without_manager_raises(bin_dir, runner):
    with pytest.raises(NoPackageManager):
        upgrade_arch_linux(runner, ArchOptions(), None)
    assert runner.executed == []


def test_upgrade_arch_linux_runs_detected(bin_dir, runner):
    trizen = _make_exe(bin_dir, "trizen")
    upgrade_arch_linux(runner, ArchOptions(manager=ArchManagerKind.TRIZEN), None)
    assert runner.executed == [(str(trizen), "-Syu")]


def test_find_and_show_pacnew(tmp_path, capsys):
    (tmp_path / "pacman.conf.pacnew").write_text("")
    sub = tmp_path / "sub"
    sub.mkdir()
    (sub / "mirrorlist.pacsave").write_text("")
    (sub / "other.conf").write_text("")
    found = list(find_pacnew(tmp_path))
    assert sorted(p.name for p in found) == ["mirrorlist.pacsave", "pacman.conf.pacnew"]
    show_pacnew(tmp_path)
    out = capsys.readouterr().out
    assert "Pacman backup configuration files found:" in out
    assert "other.conf" not in out


def test_show_pacnew_silent_when_none(tmp_path, capsys):
    show_pacnew(tmp_path)
    assert capsys.readouterr().out == ""