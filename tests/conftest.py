"""Shared fixtures: a fake Mac behind the System handle."""

from pathlib import Path

import pytest

from macsetup.settings import Settings
from macsetup.steps import HOMEBREW_INSTALL_URL, OHMYZSH_INSTALL_URL
from macsetup.system import System
from macsetup.ui.console import Console, set_console

BREW = "/opt/homebrew/bin/brew"
DEFAULTS_URL = "https://example.com/macos-defaults.sh"
OHMYZSH_TEMPLATE_RC = 'export ZSH="$HOME/.oh-my-zsh"\nZSH_THEME="robbyrussell"\nplugins=(git)\nsource $ZSH/oh-my-zsh.sh\n'


class FakeMac(System):
    """
    System handle that never spawns a process.

    It keeps a tiny model of machine state and updates it when the commands
    the steps issue are "run", so a second pass sees the first one's effects.
    """

    def __init__(self, home: Path):
        super().__init__(home=home, env={"PATH": ""})
        self.calls = []
        self.mutations = []
        self.fetched = []
        self.failures = {}

        self.brew_installed = False
        self.formulae = set()
        self.casks = set()
        self.timezone = "America/New_York"
        self.names = {"ComputerName": "Old Mac", "HostName": "old-mac", "LocalHostName": "old-mac"}
        self.gatekeeper = True
        self.scripts = {
            HOMEBREW_INSTALL_URL: "# HOMEBREW_INSTALLER\n",
            OHMYZSH_INSTALL_URL: "# OHMYZSH_INSTALLER\n",
            DEFAULTS_URL: "defaults write NSGlobalDomain AppleShowAllExtensions -bool true\n",
        }

    # -- scripting helpers -------------------------------------------------

    def fail_on(self, *prefix, code=1):
        self.failures[tuple(prefix)] = code

    def _failure_for(self, args):
        for prefix, code in self.failures.items():
            if tuple(args[: len(prefix)]) == prefix:
                return code
        return None

    # -- System hooks ------------------------------------------------------

    def fetch(self, url):
        self.fetched.append(url)
        return self.scripts.get(url, "#!/bin/sh\n")

    def brew(self):
        return BREW if self.brew_installed else None

    def _execute(self, args, *, capture, env, input=None):
        args = list(args)
        self.calls.append(args)
        if not capture:
            self.mutations.append(args)

        code = self._failure_for(args)
        if code is not None:
            return code, "", "simulated failure"

        sudo = args[:1] == ["sudo"]
        cmd = args[1:] if sudo else args

        if cmd[:2] == ["-v"] or cmd[:2] == ["-n", "true"]:
            return 0, "", ""
        if cmd == ["readlink", "/etc/localtime"]:
            return 0, f"/var/db/timezone/zoneinfo/{self.timezone}\n", ""
        if cmd[:2] == ["systemsetup", "-settimezone"]:
            self.timezone = cmd[2]
            return 0, "", ""
        if cmd[:2] == ["scutil", "--get"]:
            value = self.names.get(cmd[2])
            return (0, value + "\n", "") if value else (1, "", f"{cmd[2]}: not set")
        if cmd[:2] == ["scutil", "--set"]:
            self.names[cmd[2]] = cmd[3]
            return 0, "", ""
        if cmd == ["spctl", "--status"]:
            return (0, "assessments enabled\n", "") if self.gatekeeper else (1, "assessments disabled\n", "")
        if cmd[:1] == ["spctl"]:
            self.gatekeeper = cmd[1] == "--master-enable"
            return 0, "", ""
        if cmd[:2] == [BREW, "list"]:
            pool = self.casks if "--cask" in cmd else self.formulae
            return 0, "\n".join(sorted(pool)) + "\n", ""
        if cmd[:2] == [BREW, "install"]:
            names = [a for a in cmd[2:] if not a.startswith("--")]
            (self.casks if "--cask" in cmd else self.formulae).update(names)
            return 0, "", ""
        if cmd[:1] in (["/bin/bash"], ["/bin/sh"]) and len(cmd) >= 2 and Path(cmd[1]).is_file():
            body = Path(cmd[1]).read_text()
            if "HOMEBREW_INSTALLER" in body:
                self.brew_installed = True
            if "OHMYZSH_INSTALLER" in body:
                (self.home / ".oh-my-zsh").mkdir(parents=True, exist_ok=True)
                rc = self.home / ".zshrc"
                if not rc.exists():
                    rc.write_text(OHMYZSH_TEMPLATE_RC)
            return 0, "", ""
        if cmd[:2] == ["git", "clone"]:
            Path(cmd[-1]).mkdir(parents=True, exist_ok=True)
            return 0, "", ""
        if cmd[:1] == ["ssh-keygen"]:
            key = Path(cmd[cmd.index("-f") + 1])
            key.write_text("PRIVATE KEY")
            Path(str(key) + ".pub").write_text("ssh-ed25519 AAAA test")
            return 0, "", ""
        if cmd[:2] == ["/bin/sh", "-c"]:
            return 0, "", ""
        return 127, "", f"unknown command: {' '.join(args)}"


@pytest.fixture(autouse=True)
def quiet_console():
    set_console(Console(debug=False))
    yield


@pytest.fixture
def mac(tmp_path):
    home = tmp_path / "home"
    home.mkdir()
    return FakeMac(home)


@pytest.fixture
def settings():
    return Settings(
        defaults_url=DEFAULTS_URL,
        formulae=("git", "jq"),
        casks=("iterm2",),
        fonts=("font-fira-code",),
        keepalive_interval=0.01,
    )
