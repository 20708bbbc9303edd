from io import StringIO
from pathlib import Path

import pytest

from upgrader import macos
from upgrader.utils import CommandRunner, ProcessFailed, SkipStep


def make_bin(directory: Path, name: str, body: str = "exit 0") -> Path:
    path = directory / name
    path.write_text(f"#!/bin/sh\n{body}\n")
    path.chmod(0o755)
    return path


@pytest.fixture
def bindir(tmp_path, monkeypatch):
    directory = tmp_path / "bin"
    directory.mkdir()
    monkeypatch.setenv("PATH", str(directory))
    return directory


@pytest.fixture
def runner():
    return CommandRunner(dry_run=True, stream=StringIO())


def test_macports(bindir, runner):
    make_bin(bindir, "port")
    macos.run_macports(runner, Path("/usr/bin/sudo"), True)
    assert runner.executed == [
        ("/usr/bin/sudo", "port", "selfupdate"),
        ("/usr/bin/sudo", "port", "-u", "upgrade", "outdated"),
        ("/usr/bin/sudo", "port", "-N", "reclaim"),
    ]


def test_macports_requires_port(bindir, runner):
    with pytest.raises(SkipStep):
        macos.run_macports(runner, Path("/usr/bin/sudo"), False)


def test_mas(bindir, runner):
    mas = make_bin(bindir, "mas")
    macos.run_mas(runner)
    assert runner.executed == [(str(mas), "upgrade")]


def test_system_update_available(bindir):
    make_bin(bindir, "softwareupdate", 'echo "Software Update found the following" >&2')
    assert macos.system_update_available() is True


def test_no_system_update(bindir):
    make_bin(bindir, "softwareupdate", 'echo "No new software available." >&2')
    assert macos.system_update_available() is False


def test_system_update_failure(bindir):
    make_bin(bindir, "softwareupdate", "exit 1")
    with pytest.raises(ProcessFailed):
        macos.system_update_available()


def test_upgrade_macos_nothing_to_do(bindir, runner):
    make_bin(bindir, "softwareupdate", 'echo "No new software available." >&2')
    macos.upgrade_macos(runner, True)
    assert runner.executed == []


def test_upgrade_macos_with_yes_installs(bindir):
    make_bin(bindir, "softwareupdate")
    runner = CommandRunner(dry_run=False)
    macos.upgrade_macos(runner, True)
    assert runner.executed == [("softwareupdate", "--install", "--all")]


def test_sparkle_updates_probed_applications(bindir, runner, tmp_path):
    sparkle = make_bin(bindir, "sparkle", 'case "$3" in *Good.app) exit 0;; *) exit 1;; esac')
    apps = tmp_path / "Applications"
    apps.mkdir()
    (apps / "Good.app").mkdir()
    (apps / "Other.app").mkdir()
    macos.run_sparkle(runner, apps)
    assert runner.executed == [
        (str(sparkle), "bundle", "--check-immediately", "--application", str(apps / "Good.app"))
    ]