# upgrader

A library of upgrade steps that keep a machine current. Each step looks for
the tools it needs, prints a separator line and runs the usual update
commands for that tool.

| Module | Steps |
| --- | --- |
| `upgrader.linux` | `Distribution` detection from os-release and system upgrades for Debian/Ubuntu, Fedora/CentOS/RHEL, Arch, Alpine, openSUSE, Void, Gentoo, Solus, Exherbo, NixOS, KDE neon, Clear Linux and Bedrock; `run_deb_get`, `run_pacstall`, `run_needrestart`, `run_fwupdmgr`, `flatpak_update`, `run_snap`, `run_pihole_update`, `run_config_update` |
| `upgrader.archlinux` | paru, yay, trizen, pikaur, pamac and pacman/powerpill through `get_arch_package_manager` and `upgrade_arch_linux`; `find_pacnew` and `show_pacnew` |
| `upgrader.unix` | Homebrew (`BrewVariant`, `run_brew_formula`, `run_brew_cask`), Nix, SDKMAN!, asdf, home-manager, tldr, pearl, yadm, pkgin, fisher, oh-my-fish, fish-plug, Bash-it, GNOME Shell extensions, `reboot` |
| `upgrader.macos` | `upgrade_macos`, MacPorts, the App Store (`run_mas`), Sparkle apps |
| `upgrader.freebsd`, `upgrader.dragonfly` | base system and `pkg` upgrades, `audit_packages` |
| `upgrader.android` | Termux `pkg` upgrades |
| `upgrader.windows` | Chocolatey, winget, Scoop, Windows Update, WSL distributions, `reboot` |
| `upgrader.powershell` | `Powershell` module updates and PSWindowsUpdate |
| `upgrader.zsh` | zr, antibody, antigen, zgenom, zplug, zinit, zim |
| `upgrader.vim` | `vimrc` and `nvimrc` lookup, The Ultimate vimrc, voom |
| `upgrader.tmux` | tmux plugins (`run_tpm`), `Tmux`, `run_in_tmux`, `run_command` |
| `upgrader.ssh` | `ssh_step` for remote hosts, configured with `SshOptions` |
| `upgrader.vagrant` | `collect_boxes`, `topgrade_vagrant_box`, `upgrade_vagrant_boxes` |
| `upgrader.toolbx` | `run_toolbx` for Toolbx containers |

## Installing

Install the package with pip into the environment you want to use it from.
It has no third-party dependencies.

## Concepts

**Skipping and failing.** A step that does not apply to the current machine
raises `SkipStep` (from `upgrader.utils`) with a reason. This happens, for
example, when a binary is missing from `PATH` or a configuration directory
does not exist. A command that exits unsuccessfully raises `ProcessFailed`,
which carries its `returncode`. The building blocks for both are:

- `require(binary_name)`
- `require_path(path)`
- `require_option(value, cause)`
- `check_status(returncode, codes)`

**Running commands.** Commands are run through a `CommandRunner`. Its
`run(args, env=..., cwd=..., codes=...)` method executes a command and treats
any exit code listed in `codes` as success. With `dry_run=True` it only
prints `Dry running: ...` for each command. Either way, every command is
appended to `runner.executed`.

**Terminal output.** Output goes through `upgrader.terminal`:

- `print_separator`, `print_warning`, `print_info` and `print_result` write to a
  shared `Terminal`. `print_result` takes a `StepResult` built from a
  `StepStatus`.
- `prompt_yesno` and `should_retry` ask the user a question.
- `set_title`, `display_time` and `set_desktop_notifications` change how
  separators are shown.

A `Terminal` can also be made directly for any text stream:
`Terminal(stream, width, prefix)`.

## Examples

Seeing which commands a step would run, without running them:

```python
from upgrader.unix import run_yadm
from upgrader.utils import CommandRunner, SkipStep

runner = CommandRunner(dry_run=True)
try:
    run_yadm(runner)
except SkipStep as reason:
    print(f"skipped: {reason}")
print(runner.executed)
```

Working out which Linux distribution an os-release file describes:

```python
from upgrader.linux import Distribution, parse_os_release

fields = parse_os_release('NAME="Linux Mint"\nID=linuxmint\nID_LIKE="ubuntu debian"\n')
print(Distribution.from_os_release(fields))  # Distribution.DEBIAN
```

Finding where zsh and Vim keep their configuration:

```python
from pathlib import Path

from upgrader.vim import vimrc
from upgrader.zsh import zshrc

home = Path.home()
print(zshrc(home))
print(vimrc(home))  # raises SkipStep if neither ~/.vimrc nor ~/.vim/vimrc exists
```

Reading Vagrant and Toolbx output:

```python
from upgrader.toolbx import parse_toolbox_list
from upgrader.vagrant import parse_outdated, parse_status

print(parse_toolbox_list("CONTAINER ID  CONTAINER NAME  CREATED\nabc  fedora-toolbox  now\n"))
# ['fedora-toolbox']
print(parse_outdated("* 'ubuntu/jammy64' for 'virtualbox' is outdated! Current: 1"))
# [('ubuntu/jammy64', 'virtualbox')]
print(parse_status("Current machine states:\n\ndefault  running (virtualbox)\n\n", "/srv/vm"))
```

## What this package does not do

It is a library of steps, not a finished program:

- There is no command-line entry point and no configuration file. The caller
  decides which steps to run and passes their settings as arguments or as
  `SystemOptions`, `ArchOptions` and `SshOptions`.
- There is no step scheduler and no summary report. The caller collects
  `StepResult` values and prints them with `print_result`.
- `upgrader.vim` locates `vimrc`/`nvimrc` and updates The Ultimate vimrc and
  voom. It does not run plugin-manager updates inside Vim or Neovim themselves.

## Running the tests

Install the `test` extra, then run `pytest` from the project directory.