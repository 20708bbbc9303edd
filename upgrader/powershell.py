"""PowerShell module updates and Windows Update through PowerShell."""

from __future__ import annotations

import os
from pathlib import Path

from upgrader.terminal import is_dumb, print_separator
from upgrader.utils import CommandRunner, ProcessFailed, SkipStep, check_output, require_option, require_path, which


class Powershell:
    """A PowerShell executable and the directory of its profile.

    Without an executable every PowerShell step is skipped.
    """

    def __init__(self, path: Path | None = None, profile: Path | None = None) -> None:
        self.path = path
        self.profile = profile

    @classmethod
    def detect(cls) -> Powershell:
        """Find PowerShell; a dumb terminal disables it."""
        path = which("pwsh") or which("powershell")
        if is_dumb():
            path = None
        profile = None
        if path is not None:
            try:
                output = check_output([path, "-NoProfile", "-Command", "Split-Path $profile"])
                profile = require_path(output.strip())
            except (ProcessFailed, OSError, SkipStep):
                profile = None
        return cls(path, profile)

    @classmethod
    def windows_powershell(cls) -> Powershell:
        path = None if is_dumb() else which("powershell")
        return cls(path, None)

    @staticmethod
    def has_module(powershell: str | os.PathLike[str], command: str) -> bool:
        """Tell whether a module is available to ``powershell``."""
        try:
            output = check_output(
                [powershell, "-NoProfile", "-Command", f"Get-Module -ListAvailable {command}"]
            )
        except (ProcessFailed, OSError):
            return False
        return bool(output)

    def update_modules(self, runner: CommandRunner, verbose: bool = False, yes: bool = False) -> None:
        powershell = require_option(self.path, "Powershell is not installed")
        print_separator("Powershell Modules Update")
        command = ["Update-Module"]
        if verbose:
            command.append("-Verbose")
        if yes:
            command.append("-Force")
        print("Updating modules...")
        runner.run([powershell, "-NoProfile", "-Command", " ".join(command)])

    def supports_windows_update(self) -> bool:
        return self.path is not None and self.has_module(self.path, "PSWindowsUpdate")

    def windows_update(self, runner: CommandRunner, sudo: Path | None = None, accept_all: bool = False) -> None:
        powershell = require_option(self.path, "Powershell is not installed")
        prefix: list[object] = [sudo, powershell] if sudo is not None else [powershell]
        accept = "-AcceptAll" if accept_all else ""
        script = f"Import-Module PSWindowsUpdate; Install-WindowsUpdate -MicrosoftUpdate {accept} -Verbose"
        runner.run([*prefix, "-NoProfile", "-Command", script])