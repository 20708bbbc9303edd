import io
import shutil
import subprocess
from pathlib import Path

import pytest

from upgrader.utils import CommandRunner, SkipStep
from upgrader.zsh import (
    run_antibody,
    run_antigen,
    run_zgenom,
    run_zim,
    run_zinit,
    run_zplug,
    run_zr,
    zshrc,
)

ZSH = str(Path("/usr/bin/zsh"))


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("ZDOTDIR", "ADOTDIR", "ZGEN_SOURCE", "ZPLUG_HOME", "ZINIT_HOME", "ZIM_HOME"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(shutil, "which", lambda name, *a, **k: f"/usr/bin/{name}")


@pytest.fixture
def runner():
    return CommandRunner(dry_run=True, stream=io.StringIO())


@pytest.fixture
def home(tmp_path):
    (tmp_path / ".zshrc").write_text("")
    return tmp_path


def test_zshrc_default(tmp_path):
    assert zshrc(tmp_path) == tmp_path / ".zshrc"


def test_zshrc_zdotdir(tmp_path, monkeypatch):
    monkeypatch.setenv("ZDOTDIR", str(tmp_path / "zdot"))
    assert zshrc(tmp_path) == tmp_path / "zdot" / ".zshrc"


def test_run_zr(home, runner):
    run_zr(runner, home)
    assert runner.executed == [(ZSH, "-l", "-c", f"source {home / '.zshrc'} && zr --update")]


def test_run_antibody(runner):
    run_antibody(runner)
    assert runner.executed == [(str(Path("/usr/bin/antibody")), "update")]


def test_run_antigen(home, runner):
    (home / "antigen.zsh").write_text("")
    run_antigen(runner, home)
    assert runner.executed == [
        (ZSH, "-l", "-c", f"source {home / '.zshrc'} && antigen selfupdate && antigen update")
    ]


def test_run_antigen_without_install_skips(home, runner):
    with pytest.raises(SkipStep):
        run_antigen(runner, home)
    assert runner.executed == []


def test_run_antigen_without_zshrc_skips(tmp_path, runner):
    (tmp_path / "antigen.zsh").write_text("")
    with pytest.raises(SkipStep):
        run_antigen(runner, tmp_path)


def test_run_zgenom_uses_zgen_source(home, runner, monkeypatch):
    source = home / "elsewhere"
    source.mkdir()
    monkeypatch.setenv("ZGEN_SOURCE", str(source))
    run_zgenom(runner, home)
    assert runner.executed == [
        (ZSH, "-l", "-c", f"source {home / '.zshrc'} && zgenom selfupdate && zgenom update")
    ]


def test_run_zplug(home, runner):
    (home / ".zplug").mkdir()
    run_zplug(runner, home)
    assert runner.executed == [(ZSH, "-i", "-c", "zplug update")]


def test_run_zinit(home, runner):
    (home / ".zinit").mkdir()
    run_zinit(runner, home)
    assert runner.executed == [
        (ZSH, "-i", "-c", f"source {home / '.zshrc'} && zinit self-update && zinit update --all")
    ]


def test_run_zinit_missing_skips(home, runner):
    with pytest.raises(SkipStep):
        run_zinit(runner, home)


def test_run_zim_from_env(tmp_path, runner, monkeypatch):
    zim = tmp_path / "zim"
    zim.mkdir()
    monkeypatch.setenv("ZIM_HOME", str(zim))
    run_zim(runner, tmp_path)
    assert runner.executed == [(ZSH, "-i", "-c", "zimfw upgrade && zimfw update")]


def test_run_zim_falls_back_to_home(tmp_path, runner, monkeypatch):
    monkeypatch.setattr(
        subprocess, "run", lambda argv, **kw: subprocess.CompletedProcess(argv, 1, stdout="", stderr="")
    )
    with pytest.raises(SkipStep):
        run_zim(runner, tmp_path)
    (tmp_path / ".zim").mkdir()
    run_zim(runner, tmp_path)
    assert runner.executed == [(ZSH, "-i", "-c", "zimfw upgrade && zimfw update")]


def test_run_zim_asks_zsh(tmp_path, runner, monkeypatch):
    zim = tmp_path / "reported"
    zim.mkdir()
    monkeypatch.setattr(
        subprocess, "run", lambda argv, **kw: subprocess.CompletedProcess(argv, 0, stdout=str(zim), stderr="")
    )
    run_zim(runner, tmp_path)
    assert len(runner.executed) == 1