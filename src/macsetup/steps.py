# steps.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from .model import Step
from .state import StateStore
from .system import System

HOMEBREW_INSTALL_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"
OHMYZSH_INSTALL_URL = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"


def _home_path(system: System, path: str | Path) -> Path:
    """Relative paths are taken relative to the operator's home."""
    p = Path(path)
    return p if p.is_absolute() else system.home / p


def local_host_name(name: str) -> str:
    """
    Bonjour-safe form of a computer name: letters, digits and hyphens only.

    "Jane's MacBook Pro" -> "Jane-s-MacBook-Pro"
    """
    cleaned = re.sub(r"[^A-Za-z0-9-]+", "-", name)
    cleaned = re.sub(r"-{2,}", "-", cleaned).strip("-")
    return cleaned[:63] or "Mac"


# ---------------------------------------------------------------------
# Package manager
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class InstallHomebrew(Step):
    install_url: str = HOMEBREW_INSTALL_URL

    description = "Install Homebrew"
    touches = ("homebrew", "network")
    privileged = True

    def is_satisfied(self, system: System) -> bool:
        return system.brew() is not None

    def apply(self, system: System) -> None:
        script = system.fetch(self.install_url)
        system.run_script(script, interpreter="/bin/bash", env={"NONINTERACTIVE": "1"})


@dataclass(frozen=True)
class BrewPackages(Step):
    """Install formulae or casks that `brew list` does not report yet."""
    label: str
    names: Tuple[str, ...]
    cask: bool = False

    touches = ("homebrew",)

    @property
    def description(self) -> str:
        return f"Install {self.label}: {', '.join(self.names)}"

    def missing(self, system: System) -> List[str]:
        brew = system.brew()
        if brew is None:
            return list(self.names)
        kind = "--cask" if self.cask else "--formula"
        installed = set(system.output([brew, "list", kind, "-1"]).split())
        # tap-qualified names (user/tap/pkg) are listed by their short name
        return [n for n in self.names if n.rsplit("/", 1)[-1] not in installed]

    def is_satisfied(self, system: System) -> bool:
        if not self.names:
            return True
        return not self.missing(system)

    def apply(self, system: System) -> None:
        brew = system.brew()
        if brew is None:
            raise FileNotFoundError("brew not found; Homebrew must be installed first")
        todo = self.missing(system)
        if not todo:
            return
        cmd = [brew, "install"]
        if self.cask:
            cmd.append("--cask")
        system.run([*cmd, *todo])


# ---------------------------------------------------------------------
# System preferences
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class SetTimezone(Step):
    timezone: str

    touches = ("preferences",)
    privileged = True

    @property
    def description(self) -> str:
        return f"Set timezone to {self.timezone}"

    def current(self, system: System) -> Optional[str]:
        code, out = system.probe(["readlink", "/etc/localtime"])
        if code != 0 or "zoneinfo/" not in out:
            return None
        return out.split("zoneinfo/", 1)[1]

    def is_satisfied(self, system: System) -> bool:
        return self.current(system) == self.timezone

    def apply(self, system: System) -> None:
        system.run(["systemsetup", "-settimezone", self.timezone], sudo=True)


@dataclass(frozen=True)
class SetComputerName(Step):
    name: str

    touches = ("preferences",)
    privileged = True

    @property
    def description(self) -> str:
        return f"Set computer name to {self.name}"

    def _targets(self) -> List[Tuple[str, str]]:
        local = local_host_name(self.name)
        return [("ComputerName", self.name), ("HostName", local), ("LocalHostName", local)]

    def is_satisfied(self, system: System) -> bool:
        for key, wanted in self._targets():
            code, out = system.probe(["scutil", "--get", key])
            if code != 0 or out != wanted:
                return False
        return True

    def apply(self, system: System) -> None:
        for key, value in self._targets():
            system.run(["scutil", "--set", key, value], sudo=True)


@dataclass(frozen=True)
class ConfigureGatekeeper(Step):
    enabled: bool = True

    touches = ("preferences",)
    privileged = True

    @property
    def description(self) -> str:
        return "Enable Gatekeeper" if self.enabled else "Disable Gatekeeper"

    def current(self, system: System) -> Optional[bool]:
        # spctl exits non-zero when assessments are disabled, so read the text
        _code, out = system.probe(["spctl", "--status"])
        if "assessments enabled" in out:
            return True
        if "assessments disabled" in out:
            return False
        return None

    def is_satisfied(self, system: System) -> bool:
        return self.current(system) is self.enabled

    def apply(self, system: System) -> None:
        flag = "--master-enable" if self.enabled else "--master-disable"
        system.run(["spctl", flag], sudo=True)


@dataclass(frozen=True)
class ApplyMacosDefaults(Step):
    """
    Fetch a remote `defaults write` script and run it once per URL.

    The stamp is keyed on the URL only: edits to the script behind an
    unchanged URL are not picked up.
    """
    url: str
    stamp: str = "macos-defaults"

    touches = ("preferences", "network")
    privileged = True

    @property
    def description(self) -> str:
        return f"Apply macOS defaults from {self.url}" if self.url else "Apply macOS defaults (no URL set)"

    def is_satisfied(self, system: System) -> bool:
        if not self.url:
            return True
        recorded = StateStore.for_home(system.home).get(self.stamp)
        return recorded is not None and recorded.get("url") == self.url

    def apply(self, system: System) -> None:
        script = system.fetch(self.url)
        system.run_script(script, interpreter="/bin/bash")
        StateStore.for_home(system.home).put(self.stamp, {"url": self.url})


# ---------------------------------------------------------------------
# Shell, dotfiles and keys
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class InstallOhMyZsh(Step):
    install_url: str = OHMYZSH_INSTALL_URL
    dest: str = ".oh-my-zsh"

    description = "Install Oh My Zsh"
    touches = ("filesystem", "network")

    def is_satisfied(self, system: System) -> bool:
        return _home_path(system, self.dest).is_dir()

    def apply(self, system: System) -> None:
        script = system.fetch(self.install_url)
        system.run_script(
            script,
            interpreter="/bin/sh",
            args=("--unattended",),
            env={"RUNZSH": "no", "CHSH": "no", "KEEP_ZSHRC": "yes"},
        )


@dataclass(frozen=True)
class CloneRepository(Step):
    description: str
    url: str
    dest: str

    touches = ("filesystem", "network")

    def is_satisfied(self, system: System) -> bool:
        return _home_path(system, self.dest).exists()

    def apply(self, system: System) -> None:
        target = _home_path(system, self.dest)
        target.parent.mkdir(parents=True, exist_ok=True)
        system.run(["git", "clone", "--depth", "1", self.url, str(target)])


_PLUGINS_LINE = re.compile(r"^(\s*)plugins=\(([^)]*)\)\s*(#.*)?$")


@dataclass(frozen=True)
class EnableZshPlugins(Step):
    """
    Add plugin names to the single-line `plugins=(...)` list in the rc file.

    Without such a line, one is inserted just before Oh My Zsh is sourced,
    or appended when the rc file never sources it.
    """
    names: Tuple[str, ...]
    rc_file: str = ".zshrc"

    touches = ("filesystem",)

    @property
    def description(self) -> str:
        return f"Enable zsh plugins: {', '.join(self.names)}"

    def enabled(self, system: System) -> Optional[List[str]]:
        """Plugins listed in the rc file, or None when there is no plugins line."""
        rc = _home_path(system, self.rc_file)
        if not rc.exists():
            return None
        for line in rc.read_text(encoding="utf-8").splitlines():
            m = _PLUGINS_LINE.match(line)
            if m:
                return m.group(2).split()
        return None

    def is_satisfied(self, system: System) -> bool:
        if not self.names:
            return True
        current = self.enabled(system)
        return current is not None and all(n in current for n in self.names)

    def apply(self, system: System) -> None:
        rc = _home_path(system, self.rc_file)
        current = self.enabled(system)
        if current is None:
            line = f"plugins=({' '.join(self.names)})"
            lines = rc.read_text(encoding="utf-8").splitlines() if rc.exists() else []
            for i, existing in enumerate(lines):
                if "oh-my-zsh.sh" in existing and existing.lstrip().startswith(("source", ".")):
                    lines.insert(i, line)
                    rc.write_text("\n".join(lines) + "\n", encoding="utf-8")
                    return
            system.append_line(rc, line)
            return

        wanted = current + [n for n in self.names if n not in current]
        lines = rc.read_text(encoding="utf-8").splitlines()
        for i, existing in enumerate(lines):
            m = _PLUGINS_LINE.match(existing)
            if m:
                comment = f" {m.group(3)}" if m.group(3) else ""
                lines[i] = f"{m.group(1)}plugins=({' '.join(wanted)}){comment}"
                break
        rc.write_text("\n".join(lines) + "\n", encoding="utf-8")


@dataclass(frozen=True)
class InstallDotfiles(Step):
    """Clone a dotfiles repo and make the shell rc file source it, once."""
    repo: str
    dest: str = ".dotfiles"
    rc_file: str = ".zshrc"
    source_file: str = ".zshrc"

    touches = ("filesystem", "network")

    @property
    def description(self) -> str:
        return f"Install dotfiles from {self.repo}"

    def source_line(self, system: System) -> str:
        target = _home_path(system, self.dest) / self.source_file
        return f'[ -f "{target}" ] && source "{target}"'

    def _rc_has_line(self, system: System) -> bool:
        rc = _home_path(system, self.rc_file)
        if not rc.exists():
            return False
        wanted = self.source_line(system)
        return any(line.strip() == wanted for line in rc.read_text(encoding="utf-8").splitlines())

    def is_satisfied(self, system: System) -> bool:
        return _home_path(system, self.dest).exists() and self._rc_has_line(system)

    def apply(self, system: System) -> None:
        target = _home_path(system, self.dest)
        if not target.exists():
            system.run(["git", "clone", self.repo, str(target)])
        if not self._rc_has_line(system):
            system.append_line(_home_path(system, self.rc_file), self.source_line(system))


@dataclass(frozen=True)
class GenerateSshKey(Step):
    comment: str
    passphrase: str = field(default="", repr=False)
    key_path: str = ".ssh/id_ed25519"

    touches = ("filesystem",)

    @property
    def description(self) -> str:
        return f"Generate SSH key {self.key_path}"

    def is_satisfied(self, system: System) -> bool:
        return _home_path(system, self.key_path).exists()

    def apply(self, system: System) -> None:
        key = _home_path(system, self.key_path)
        key.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        # ssh-keygen takes a new passphrase only from -N or a tty, so it is
        # visible in the process list (`ps`) while the command runs
        system.run(
            ["ssh-keygen", "-q", "-t", "ed25519", "-C", self.comment, "-N", self.passphrase, "-f", str(key)]
        )


# ---------------------------------------------------------------------
# Generic shell step (custom plans)
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ShellStep(Step):
    """
    A shell command with an optional `check` command.
    When `check` exits 0 the step counts as already satisfied.
    """
    description: str
    run: str
    check: Optional[str] = None
    privileged: bool = False
    touches: Tuple[str, ...] = ("shell",)

    def is_satisfied(self, system: System) -> bool:
        if self.check is None:
            return False
        code, _out = system.probe(["/bin/sh", "-c", self.check])
        return code == 0

    def apply(self, system: System) -> None:
        system.run(["/bin/sh", "-c", self.run])
