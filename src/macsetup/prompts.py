# prompts.py
from __future__ import annotations

from dataclasses import replace
from typing import Callable

import click

from .model import Configuration
from .settings import Settings
from .system import System
from .ui.console import get_console

Prompt = Callable[..., str]
Confirm = Callable[..., bool]


def default_configuration(settings: Settings, system: System, *, passphrase: str = "", quiet: bool = False) -> Configuration:
    """The Configuration a run gets when every prompt is left blank."""
    return Configuration(
        timezone=settings.timezone,
        computer_name=settings.computer_name or system.computer_name(),
        gatekeeper=settings.gatekeeper,
        defaults_url=settings.defaults_url,
        passphrase=passphrase,
        quiet=quiet,
    )


def gather_configuration(
    defaults: Configuration,
    *,
    quiet: bool = False,
    prompt: Prompt = click.prompt,
    confirm: Confirm = click.confirm,
) -> Configuration:
    """
    Ask for each setting in a fixed order; blank input keeps the default.

    In quiet mode neither `prompt` nor `confirm` is called.
    """
    if quiet:
        return replace(defaults, quiet=True)

    timezone = prompt("Timezone", default=defaults.timezone)
    computer_name = prompt("Computer name", default=defaults.computer_name)
    defaults_url = prompt("URL of a macOS defaults script", default=defaults.defaults_url)
    gatekeeper = confirm("Keep Gatekeeper enabled?", default=defaults.gatekeeper)
    passphrase = prompt(
        "SSH key passphrase (blank for none)",
        default=defaults.passphrase,
        hide_input=True,
        show_default=False,
    )

    return Configuration(
        timezone=timezone.strip() or defaults.timezone,
        computer_name=computer_name.strip() or defaults.computer_name,
        gatekeeper=bool(gatekeeper),
        defaults_url=defaults_url.strip(),
        passphrase=passphrase,
        quiet=False,
    )


def confirm_configuration(config: Configuration, *, confirm: Confirm = click.confirm) -> bool:
    """Echo the resolved configuration and ask before anything is changed."""
    get_console().print_configuration(config.rows())
    if config.quiet:
        return True
    return bool(confirm("Apply this configuration?", default=False))
