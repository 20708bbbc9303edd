"""Upgrading Vagrant boxes and running the upgrade inside them."""

from __future__ import annotations

import contextlib
import enum
import logging
import os
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from upgrader.terminal import print_separator
from upgrader.utils import CommandRunner, ProcessFailed, SkipStep, check_output, require, require_option

logger = logging.getLogger(__name__)

_OUTDATED = re.compile(r"\* '(.*?)' for '(.*?)' is outdated")


class BoxStatus(enum.Enum):
    POWER_OFF = "poweroff"
    RUNNING = "running"
    SAVED = "saved"
    ABORTED = "aborted"

    def powered_on(self) -> bool:
        return self is BoxStatus.RUNNING


@dataclass(frozen=True)
class VagrantBox:
    path: Path
    name: str
    initial_status: BoxStatus

    def smart_name(self) -> str:
        """The box name, or its directory name for the default box."""
        return self.path.name if self.name == "default" else self.name

    def __str__(self) -> str:
        return f"{self.name} @ {self.path}"


def parse_status(output: str, directory: str | os.PathLike[str]) -> list[VagrantBox]:
    """Parse the box table printed by ``vagrant status``."""
    path = Path(directory)
    boxes = []
    for line in output.split("\n")[2:]:
        if not line or line.startswith("\r"):
            break
        logger.debug("Vagrant line: %r", line)
        name, status, *_ = line.split()
        box = VagrantBox(path=path, name=name, initial_status=BoxStatus(status))
        logger.debug("%r", box)
        boxes.append(box)
    return boxes


def parse_outdated(output: str) -> list[tuple[str, str]]:
    """Return (box, provider) pairs from ``vagrant box outdated`` output."""
    return _OUTDATED.findall(output)


@dataclass(frozen=True)
class Vagrant:
    path: Path

    def get_boxes(self, directory: str | os.PathLike[str]) -> list[VagrantBox]:
        output = check_output([self.path, "status"], cwd=directory)
        logger.debug("Vagrant output in %s: %s", directory, output)
        return parse_status(output, directory)

    @contextlib.contextmanager
    def temporary_power_on(
        self, runner: CommandRunner, vagrant_box: VagrantBox, always_suspend: bool = False
    ) -> Iterator[None]:
        """Start a stopped box for the duration of the block, then stop it again."""
        status = vagrant_box.initial_status
        if status is BoxStatus.RUNNING:
            raise ValueError(f"Box {vagrant_box} is already running")
        start = "resume" if status is BoxStatus.SAVED else "up"
        runner.run([self.path, start, vagrant_box.name], cwd=vagrant_box.path)
        try:
            yield
        finally:
            if always_suspend or status is BoxStatus.SAVED:
                stop = "suspend"
            else:
                stop = "halt"
            print()
            try:
                runner.run([self.path, stop, vagrant_box.name], cwd=vagrant_box.path)
            except (ProcessFailed, OSError) as exc:
                logger.debug("Stopping %s failed: %s", vagrant_box, exc)


def collect_boxes(directories: Iterable[str | os.PathLike[str]] | None) -> list[VagrantBox]:
    """Gather the boxes of every configured directory."""
    directories = require_option(
        directories, "No Vagrant directories were specified in the configuration file"
    )
    vagrant = Vagrant(require("vagrant"))

    print_separator("Vagrant")
    print("Collecting Vagrant boxes")

    result: list[VagrantBox] = []
    for directory in directories:
        try:
            result.extend(vagrant.get_boxes(directory))
        except (ProcessFailed, OSError, ValueError) as exc:
            logger.error("Error collecting vagrant boxes from %s: %s", directory, exc)
    return result


def topgrade_vagrant_box(
    runner: CommandRunner,
    vagrant_box: VagrantBox,
    power_on: bool = True,
    always_suspend: bool = False,
    yes: bool = False,
) -> None:
    """Run the upgrade inside a box, starting it first if needed."""
    vagrant = Vagrant(require("vagrant"))
    separator = f"Vagrant ({vagrant_box.smart_name()})"

    with contextlib.ExitStack() as stack:
        if not vagrant_box.initial_status.powered_on():
            if not power_on:
                raise SkipStep(f"Skipping powered off box {vagrant_box}")
            print_separator(separator)
            stack.enter_context(vagrant.temporary_power_on(runner, vagrant_box, always_suspend))
        else:
            print_separator(separator)

        command = f"env TOPGRADE_PREFIX={vagrant_box.smart_name()} topgrade"
        if yes:
            command += " -y"
        runner.run([vagrant.path, "ssh", "-c", command], cwd=vagrant_box.path)


def upgrade_vagrant_boxes(runner: CommandRunner) -> None:
    """Update every outdated box image and prune the old ones."""
    vagrant = require("vagrant")
    print_separator("Vagrant boxes")

    outdated = parse_outdated(check_output([vagrant, "box", "outdated", "--global"]))
    for name, provider in outdated:
        try:
            runner.run([vagrant, "box", "update", "--box", name, "--provider", provider])
        except ProcessFailed as exc:
            logger.debug("Updating box %s failed: %s", name, exc)

    if not outdated:
        print("No outdated boxes")
    else:
        runner.run([vagrant, "box", "prune"])