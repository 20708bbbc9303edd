from io import StringIO
from pathlib import Path

import pytest

from upgrader import freebsd
from upgrader.utils import CommandRunner, SkipStep


@pytest.fixture
def runner():
    return CommandRunner(dry_run=True, stream=StringIO())


def test_upgrade_freebsd(runner):
    freebsd.upgrade_freebsd(runner, Path("/usr/local/bin/sudo"))
    assert runner.executed == [("/usr/local/bin/sudo", "/usr/sbin/freebsd-update", "fetch", "install")]


def test_upgrade_packages(runner):
    freebsd.upgrade_packages(runner, Path("/usr/local/bin/sudo"))
    assert runner.executed == [("/usr/local/bin/sudo", "/usr/sbin/pkg", "upgrade")]


@pytest.mark.parametrize("function", [freebsd.upgrade_freebsd, freebsd.upgrade_packages])
def test_requires_sudo(runner, function):
    with pytest.raises(SkipStep, match="No sudo detected"):
        function(runner, None)
    assert runner.executed == []


def test_audit_packages(monkeypatch):
    calls = []
    monkeypatch.setattr(freebsd.subprocess, "run", lambda args, **kwargs: calls.append(args))
    freebsd.audit_packages(Path("/usr/local/bin/sudo"))
    freebsd.audit_packages(None)
    assert calls == [["/usr/local/bin/sudo", "/usr/sbin/pkg", "audit", "-Fr"]]