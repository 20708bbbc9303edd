"""Locating vim configuration and updating vim distributions."""

from __future__ import annotations

import os
import sys
from pathlib import Path

from upgrader.terminal import print_separator
from upgrader.utils import CommandRunner, SkipStep, require, require_path


def vimrc(home: str | os.PathLike[str]) -> Path:
    """Return the user's vimrc, trying ~/.vimrc before ~/.vim/vimrc."""
    try:
        return require_path(Path(home, ".vimrc"))
    except SkipStep:
        return require_path(Path(home, ".vim/vimrc"))


def _nvim_base_dir(home: str | os.PathLike[str]) -> Path:
    if sys.platform == "win32":
        local = os.environ.get("LOCALAPPDATA")
        return Path(local) if local else Path(home, "AppData", "Local")
    # Neovim follows XDG even on macOS.
    xdg = os.environ.get("XDG_CONFIG_HOME")
    return Path(xdg) if xdg is not None else Path(home, ".config")


def nvimrc(home: str | os.PathLike[str]) -> Path:
    """Return the Neovim init file, preferring init.vim over init.lua."""
    base_dir = _nvim_base_dir(home)
    try:
        return require_path(base_dir / "nvim/init.vim")
    except SkipStep:
        return require_path(base_dir / "nvim/init.lua")


def upgrade_ultimate_vimrc(runner: CommandRunner, home: str | os.PathLike[str]) -> None:
    """Reset, pull and update the plugins of the Ultimate vimrc."""
    config_dir = require_path(Path(home, ".vim_runtime"))
    git = require("git")
    python = require("python3")
    update_plugins = require_path(config_dir / "update_plugins.py")

    print_separator("The Ultimate vimrc")

    runner.run([git, "reset", "--hard"], cwd=config_dir)
    runner.run([git, "clean", "-d", "--force"], cwd=config_dir)
    runner.run([git, "pull", "--rebase"], cwd=config_dir)
    runner.run([python, update_plugins], cwd=config_dir)


def run_voom(runner: CommandRunner) -> None:
    voom = require("voom")
    print_separator("voom")
    runner.run([voom, "update"])