# Load the `plan` submodule first so importing it later does not rebind the
# package attribute `plan` away from the DSL helper below.
from . import plan as _plan_module  # noqa: F401
from .dsl import sh, brew, cask, clone, plan
from .runner import run_steps, StepFailure
from .model import Configuration, Step, StepOutcome
from .system import System, CommandFailed

__all__ = [
    "sh",
    "brew",
    "cask",
    "clone",
    "plan",
    "run_steps",
    "StepFailure",
    "Configuration",
    "Step",
    "StepOutcome",
    "System",
    "CommandFailed",
]
