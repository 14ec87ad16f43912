# settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

DEFAULT_TIMEZONE = "Europe/Paris"
DEFAULT_DEFAULTS_URL = "https://raw.githubusercontent.com/mathiasbynens/dotfiles/main/.macos"
DEFAULT_KEEPALIVE_INTERVAL = 60.0

DEFAULT_FORMULAE = (
    "git",
    "gh",
    "wget",
    "jq",
    "tree",
    "zsh",
    "pyenv",
    "node",
)
DEFAULT_CASKS = (
    "iterm2",
    "visual-studio-code",
    "google-chrome",
    "rectangle",
    "docker",
)
DEFAULT_FONTS = (
    "font-fira-code",
    "font-jetbrains-mono",
    "font-meslo-lg-nerd-font",
)
DEFAULT_ZSH_PLUGINS = (
    ("zsh-autosuggestions", "https://github.com/zsh-users/zsh-autosuggestions.git"),
    ("zsh-syntax-highlighting", "https://github.com/zsh-users/zsh-syntax-highlighting.git"),
)

_TRUE = {"1", "true", "yes", "y", "on"}
_FALSE = {"0", "false", "no", "n", "off"}


class SettingsError(ValueError):
    """Raised when a MACSETUP_* variable cannot be parsed."""


@dataclass(frozen=True)
class Settings:
    """
    Defaults for a run, before the operator gets a chance to change them.

    computer_name is None when the current system name should be used.
    """
    timezone: str = DEFAULT_TIMEZONE
    computer_name: Optional[str] = None
    gatekeeper: bool = True
    defaults_url: str = DEFAULT_DEFAULTS_URL
    dotfiles_repo: str = ""
    formulae: Tuple[str, ...] = DEFAULT_FORMULAE
    casks: Tuple[str, ...] = DEFAULT_CASKS
    fonts: Tuple[str, ...] = DEFAULT_FONTS
    zsh_plugins: Tuple[Tuple[str, str], ...] = DEFAULT_ZSH_PLUGINS
    keepalive_interval: float = DEFAULT_KEEPALIVE_INTERVAL


def _csv(value: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _bool(name: str, value: str) -> bool:
    v = value.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise SettingsError(f"{name} must be a boolean (yes/no), got {value!r}")


def _plugins(name: str, value: str) -> Tuple[Tuple[str, str], ...]:
    out = []
    for item in _csv(value):
        plugin, sep, url = item.partition("=")
        if not sep or not plugin.strip() or not url.strip():
            raise SettingsError(f"{name} entries must look like name=url, got {item!r}")
        out.append((plugin.strip(), url.strip()))
    return tuple(out)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read MACSETUP_* overrides from the environment."""
    env = os.environ if environ is None else environ
    kwargs = {}

    if "MACSETUP_TIMEZONE" in env:
        kwargs["timezone"] = env["MACSETUP_TIMEZONE"].strip()
    if env.get("MACSETUP_COMPUTER_NAME", "").strip():
        kwargs["computer_name"] = env["MACSETUP_COMPUTER_NAME"].strip()
    if "MACSETUP_GATEKEEPER" in env:
        kwargs["gatekeeper"] = _bool("MACSETUP_GATEKEEPER", env["MACSETUP_GATEKEEPER"])
    if "MACSETUP_DEFAULTS_URL" in env:
        kwargs["defaults_url"] = env["MACSETUP_DEFAULTS_URL"].strip()
    if "MACSETUP_DOTFILES_REPO" in env:
        kwargs["dotfiles_repo"] = env["MACSETUP_DOTFILES_REPO"].strip()
    if "MACSETUP_FORMULAE" in env:
        kwargs["formulae"] = _csv(env["MACSETUP_FORMULAE"])
    if "MACSETUP_CASKS" in env:
        kwargs["casks"] = _csv(env["MACSETUP_CASKS"])
    if "MACSETUP_FONTS" in env:
        kwargs["fonts"] = _csv(env["MACSETUP_FONTS"])
    if "MACSETUP_ZSH_PLUGINS" in env:
        kwargs["zsh_plugins"] = _plugins("MACSETUP_ZSH_PLUGINS", env["MACSETUP_ZSH_PLUGINS"])

    if "MACSETUP_KEEPALIVE_INTERVAL" in env:
        raw = env["MACSETUP_KEEPALIVE_INTERVAL"]
        try:
            interval = float(raw)
        except ValueError:
            raise SettingsError(f"MACSETUP_KEEPALIVE_INTERVAL must be a number, got {raw!r}") from None
        if interval <= 0:
            raise SettingsError("MACSETUP_KEEPALIVE_INTERVAL must be positive")
        kwargs["keepalive_interval"] = interval

    return Settings(**kwargs)
