import io
import shutil
import subprocess
from pathlib import Path

import pytest

from upgrader.utils import CommandRunner, SkipStep
from upgrader.windows import (
    get_wsl_distributions,
    parse_wsl_list,
    run_chocolatey,
    run_scoop,
    run_winget,
    run_wsl_topgrade,
    windows_update,
)


def _bin(name):
    return str(Path(f"/usr/bin/{name}"))


@pytest.fixture(autouse=True)
def fake_which(monkeypatch):
    missing = {"powershell", "pwsh"}
    monkeypatch.setattr(
        shutil, "which", lambda name, *a, **k: None if name in missing else f"/usr/bin/{name}"
    )


@pytest.fixture
def runner():
    return CommandRunner(dry_run=True, stream=io.StringIO())


def test_parse_wsl_list_strips_nuls_and_returns():
    assert parse_wsl_list("Ub\0untu\r\n\r\nDebian\r\n") == ["Ubuntu", "Debian"]


def test_parse_wsl_list_empty():
    assert parse_wsl_list("") == []


def test_chocolatey_without_sudo(runner):
    run_chocolatey(runner, None, False)
    assert runner.executed == [(_bin("choco"), "upgrade", "all")]


def test_chocolatey_with_sudo_and_yes(runner):
    run_chocolatey(runner, Path("/usr/bin/gsudo"), True)
    assert runner.executed == [(_bin("gsudo"), "choco", "upgrade", "all", "--yes")]


def test_winget_disabled_skips(runner):
    with pytest.raises(SkipStep):
        run_winget(runner, False)
    assert runner.executed == []


def test_winget_enabled(runner):
    run_winget(runner, True)
    assert runner.executed == [(_bin("winget"), "upgrade", "--all")]


def test_scoop_with_cleanup(runner):
    run_scoop(runner, True)
    scoop = _bin("scoop")
    assert runner.executed == [(scoop, "update"), (scoop, "update", "*"), (scoop, "cleanup", "*")]


def test_scoop_without_cleanup(runner):
    run_scoop(runner, False)
    assert len(runner.executed) == 2


def _fake_wsl(found):
    def run(argv, **kwargs):
        if "--list" in argv:
            return subprocess.CompletedProcess(argv, 0, stdout="Ubuntu\r\nDebian\r\n", stderr="")
        dist = argv[2]
        if dist in found:
            return subprocess.CompletedProcess(argv, 0, stdout="/usr/bin/topgrade\n", stderr="")
        return subprocess.CompletedProcess(argv, 1, stdout="", stderr="")

    return run


def test_get_wsl_distributions(monkeypatch):
    monkeypatch.setattr(subprocess, "run", _fake_wsl(()))
    assert get_wsl_distributions("wsl") == ["Ubuntu", "Debian"]


def test_wsl_topgrade_runs_where_installed(monkeypatch, runner):
    monkeypatch.setattr(subprocess, "run", _fake_wsl({"Ubuntu"}))
    run_wsl_topgrade(runner, True)
    assert runner.executed == [
        (_bin("wsl"), "-d", "Ubuntu", "bash", "-c", "TOPGRADE_PREFIX=Ubuntu exec /usr/bin/topgrade", "-y")
    ]


def test_wsl_topgrade_nowhere_installed_skips(monkeypatch, runner):
    monkeypatch.setattr(subprocess, "run", _fake_wsl(()))
    with pytest.raises(SkipStep):
        run_wsl_topgrade(runner, False)
    assert runner.executed == []


def test_windows_update_with_usoclient(runner):
    windows_update(runner, None, False)
    usoclient = _bin("UsoClient")
    assert runner.executed == [(usoclient, "ScanInstallWait"), (usoclient, "StartInstall")]