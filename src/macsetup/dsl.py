# src/macsetup/dsl.py
from __future__ import annotations

from typing import List, Optional

from .model import Step
from .steps import BrewPackages, CloneRepository, ShellStep


# ---------------------------------------------------------------------
# Step helpers
# ---------------------------------------------------------------------

def sh(description: str, cmd: str, *, check: Optional[str] = None, sudo: bool = False) -> ShellStep:
    """Create a shell step. `check` exiting 0 means nothing to do."""
    run = f"sudo {cmd}" if sudo else cmd
    return ShellStep(description=description, run=run, check=check, privileged=sudo)


def brew(*names: str) -> BrewPackages:
    return BrewPackages(label="Homebrew formulae", names=tuple(names))


def cask(*names: str) -> BrewPackages:
    return BrewPackages(label="Homebrew casks", names=tuple(names), cask=True)


def clone(url: str, dest: str, *, description: Optional[str] = None) -> CloneRepository:
    return CloneRepository(description=description or f"Clone {url}", url=url, dest=dest)


# ---------------------------------------------------------------------
# Plan helper (single-file story)
# ---------------------------------------------------------------------

def plan(*steps: Step) -> List[Step]:
    """
    Plan definition helper for custom plan files.

    Users can write:
        from macsetup.dsl import plan, sh, brew

        def build(config, settings):
            return plan(
                brew("ripgrep", "fd"),
                sh("Show hidden files", "defaults write com.apple.finder AppleShowAllFiles -bool true"),
            )

    Or use STEPS directly:
        STEPS = plan(brew("ripgrep"))
    """
    return list(steps)
