"""Updating zsh plugin managers."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from upgrader.terminal import print_separator
from upgrader.utils import CommandRunner, ProcessFailed, check_output, require, require_path

logger = logging.getLogger(__name__)


def zshrc(home: str | os.PathLike[str]) -> Path:
    """Return the path of .zshrc, honouring ZDOTDIR."""
    zdotdir = os.environ.get("ZDOTDIR")
    if zdotdir is not None:
        return Path(zdotdir, ".zshrc")
    return Path(home, ".zshrc")


def _env_dir(variable: str, default: Path) -> Path:
    value = os.environ.get(variable)
    return Path(value) if value is not None else default


def run_zr(runner: CommandRunner, home: str | os.PathLike[str]) -> None:
    zsh = require("zsh")
    require("zr")
    print_separator("zr")
    runner.run([zsh, "-l", "-c", f"source {zshrc(home)} && zr --update"])


def run_antibody(runner: CommandRunner) -> None:
    require("zsh")
    antibody = require("antibody")
    print_separator("antibody")
    runner.run([antibody, "update"])


def run_antigen(runner: CommandRunner, home: str | os.PathLike[str]) -> None:
    zsh = require("zsh")
    rc = require_path(zshrc(home))
    require_path(_env_dir("ADOTDIR", Path(home, "antigen.zsh")))
    print_separator("antigen")
    runner.run([zsh, "-l", "-c", f"source {rc} && antigen selfupdate && antigen update"])


def run_zgenom(runner: CommandRunner, home: str | os.PathLike[str]) -> None:
    zsh = require("zsh")
    rc = require_path(zshrc(home))
    require_path(_env_dir("ZGEN_SOURCE", Path(home, ".zgenom")))
    print_separator("zgenom")
    runner.run([zsh, "-l", "-c", f"source {rc} && zgenom selfupdate && zgenom update"])


def run_zplug(runner: CommandRunner, home: str | os.PathLike[str]) -> None:
    zsh = require("zsh")
    require_path(zshrc(home))
    require_path(_env_dir("ZPLUG_HOME", Path(home, ".zplug")))
    print_separator("zplug")
    runner.run([zsh, "-i", "-c", "zplug update"])


def run_zinit(runner: CommandRunner, home: str | os.PathLike[str]) -> None:
    zsh = require("zsh")
    rc = require_path(zshrc(home))
    require_path(_env_dir("ZINIT_HOME", Path(home, ".zinit")))
    print_separator("zinit")
    runner.run([zsh, "-i", "-c", f"source {rc} && zinit self-update && zinit update --all"])


def _zim_home(home: str | os.PathLike[str]) -> Path:
    value = os.environ.get("ZIM_HOME")
    if value is not None:
        return Path(value)
    try:
        return Path(check_output(["zsh", "-c", "[[ -n ${ZIM_HOME} ]] && print -n ${ZIM_HOME}"]))
    except (ProcessFailed, OSError) as exc:
        logger.debug("Asking zsh for ZIM_HOME failed: %s", exc)
        return Path(home, ".zim")


def run_zim(runner: CommandRunner, home: str | os.PathLike[str]) -> None:
    zsh = require("zsh")
    require_path(_zim_home(home))
    print_separator("zim")
    runner.run([zsh, "-i", "-c", "zimfw upgrade && zimfw update"])