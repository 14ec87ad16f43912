# plan.py
from __future__ import annotations

import runpy
from pathlib import Path
from typing import List

from .model import Configuration, Step
from .settings import Settings
from .steps import (
    ApplyMacosDefaults,
    BrewPackages,
    CloneRepository,
    ConfigureGatekeeper,
    EnableZshPlugins,
    GenerateSshKey,
    InstallDotfiles,
    InstallHomebrew,
    InstallOhMyZsh,
    SetComputerName,
    SetTimezone,
)


class PlanError(Exception):
    """Raised when a plan file cannot be loaded."""
    pass


def default_plan(config: Configuration, settings: Settings) -> List[Step]:
    """The standard provisioning sequence for a new Mac."""
    steps: List[Step] = [
        InstallHomebrew(),
        SetTimezone(config.timezone),
        SetComputerName(config.computer_name),
        ConfigureGatekeeper(config.gatekeeper),
        BrewPackages("Homebrew formulae", tuple(settings.formulae)),
        BrewPackages("applications", tuple(settings.casks), cask=True),
        BrewPackages("fonts", tuple(settings.fonts), cask=True),
        InstallOhMyZsh(),
    ]

    for name, url in settings.zsh_plugins:
        steps.append(
            CloneRepository(
                description=f"Install zsh plugin {name}",
                url=url,
                dest=f".oh-my-zsh/custom/plugins/{name}",
            )
        )
    if settings.zsh_plugins:
        steps.append(EnableZshPlugins(tuple(name for name, _url in settings.zsh_plugins)))

    if settings.dotfiles_repo:
        steps.append(InstallDotfiles(settings.dotfiles_repo))

    steps.append(GenerateSshKey(comment=config.computer_name, passphrase=config.passphrase))
    steps.append(ApplyMacosDefaults(config.defaults_url))
    return steps


# ----------------------------------------------------------------------
# Plan loading (local file)
# ----------------------------------------------------------------------

def load_plan(path: str | Path, config: Configuration, settings: Settings) -> List[Step]:
    """
    Load a plan from a python file path.

    The file must define either:
      - build(config, settings) -> List[Step]
      - STEPS = [Step, ...]

    Returns:
      List[Step]
    """
    plan_path = Path(path).expanduser().resolve()
    if not plan_path.exists():
        raise PlanError(f"Plan file not found: {plan_path}")
    if plan_path.suffix != ".py":
        raise PlanError(f"Plan must be a .py file, got: {plan_path.name}")

    module_name = f"macsetup_plan_{plan_path.stem}"
    globals_dict = runpy.run_path(str(plan_path), run_name=module_name)

    steps = None
    if "build" in globals_dict and callable(globals_dict["build"]):
        steps = globals_dict["build"](config, settings)
    elif "STEPS" in globals_dict:
        steps = globals_dict["STEPS"]

    if not isinstance(steps, list) or not all(isinstance(s, Step) for s in steps):
        raise PlanError(
            "Plan must return/define a List[Step]. "
            "Define build(config, settings) -> List[Step] or STEPS = [Step, ...]."
        )

    return steps
