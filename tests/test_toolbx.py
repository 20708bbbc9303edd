import io

from upgrader.toolbx import list_toolboxes, parse_toolbox_list, run_toolbx, toolbox_command
from upgrader.utils import CommandRunner

LISTING = (
    "CONTAINER ID  CONTAINER NAME     CREATED      STATUS   IMAGE NAME\n"
    "1a2b3c4d5e6f  fedora-toolbox-35  2 weeks ago  exited   registry/fedora:35\n"
    "\n"
    "6f5e4d3c2b1a  dev                3 days ago   running  registry/fedora:36\n"
)


def _fake_toolbox(tmp_path, monkeypatch):
    bindir = tmp_path / "bin"
    bindir.mkdir()
    data = tmp_path / "listing"
    data.write_text(LISTING)
    script = bindir / "toolbox"
    script.write_text(f'#!/bin/sh\nif [ "$1" = list ]; then while read -r l; do echo "$l"; done < {data}; fi\n')
    script.chmod(0o755)
    monkeypatch.setenv("PATH", str(bindir))
    return script


def test_parse_toolbox_list_skips_header_and_blank_lines():
    assert parse_toolbox_list(LISTING) == ["fedora-toolbox-35", "dev"]


def test_parse_toolbox_list_header_only():
    assert parse_toolbox_list("CONTAINER ID  CONTAINER NAME\n") == []


def test_toolbox_command():
    assert toolbox_command("dev", "/run/host/usr/bin/topgrade", False) == [
        "run",
        "-c",
        "dev",
        "env",
        "TOPGRADE_PREFIX='Toolbx dev'",
        "/run/host/usr/bin/topgrade",
        "--only",
        "system",
    ]
    assert toolbox_command("dev", "x", True)[-1] == "--yes"


def test_list_toolboxes_runs_toolbox(tmp_path, monkeypatch):
    script = _fake_toolbox(tmp_path, monkeypatch)
    assert list_toolboxes(script) == ["fedora-toolbox-35", "dev"]


def test_run_toolbx_runs_in_every_container(tmp_path, monkeypatch):
    script = _fake_toolbox(tmp_path, monkeypatch)
    runner = CommandRunner(dry_run=True, stream=io.StringIO())
    run_toolbx(runner, yes=True)
    assert [cmd[3] for cmd in runner.executed] == ["fedora-toolbox-35", "dev"]
    for cmd in runner.executed:
        assert cmd[0] == str(script)
        assert cmd[6].startswith("/run/host/")
        assert cmd[-3:] == ("--only", "system", "--yes")