# runner.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .keepalive import SudoKeepAlive
from .model import Step, StepOutcome
from .system import CommandFailed, System
from .ui.console import Console, get_console

TOOL_HINTS = {
    "brew": "Install Homebrew (https://brew.sh) or fix PATH.",
    "git": "Install the Xcode Command Line Tools: xcode-select --install",
    "sudo": "Run macsetup from an administrator account.",
    "systemsetup": "systemsetup ships with macOS; this step only works on a Mac.",
    "scutil": "scutil ships with macOS; this step only works on a Mac.",
    "spctl": "spctl ships with macOS; this step only works on a Mac.",
    "ssh-keygen": "Install OpenSSH or fix PATH.",
}


# ----------------------------------------------------------------------
# Errors
# ----------------------------------------------------------------------

@dataclass
class StepFailure(Exception):
    index: int
    description: str
    cmd: str
    exit_code: int
    message: str = ""

    def __str__(self) -> str:
        msg = f"step {self.index} '{self.description}' failed (exit={self.exit_code})"
        if self.cmd:
            msg += f": {self.cmd}"
        if self.message:
            msg += f"\n{self.message}"
        return msg


def _hint_for(cmd: Sequence[str]) -> Optional[str]:
    args = [c for c in cmd if c != "sudo"] or list(cmd)
    if not args:
        return None
    tool = args[0].rsplit("/", 1)[-1]
    return TOOL_HINTS.get(tool)


# ----------------------------------------------------------------------
# Execution
# ----------------------------------------------------------------------

def _execute_step(index: int, step: Step, system: System, keepalive: Optional[SudoKeepAlive], dry_run: bool) -> str:
    """
    Returns the status for one step:
      - "skipped"  (precondition already satisfied)
      - "pending"  (dry run, would apply)
      - "ok"
    Raises StepFailure for any error from the step (KeyboardInterrupt passes through).
    """
    try:
        if step.is_satisfied(system):
            return "skipped"
        if dry_run:
            return "pending"
        if step.privileged and keepalive is not None:
            keepalive.start()
        step.apply(system)
    except CommandFailed as e:
        raise StepFailure(
            index=index,
            description=step.description,
            cmd=" ".join(e.cmd),
            exit_code=e.exit_code,
            message=e.stderr.strip(),
        ) from e
    except Exception as e:
        # any other error is still reported against the step that raised it
        raise StepFailure(
            index=index,
            description=step.description,
            cmd="",
            exit_code=1,
            message=str(e) or type(e).__name__,
        ) from e
    return "ok"


def run_steps(
    steps: Sequence[Step],
    system: System,
    *,
    keepalive: Optional[SudoKeepAlive] = None,
    dry_run: bool = False,
    console: Optional[Console] = None,
) -> List[StepOutcome]:
    """
    Run steps strictly in order and stop at the first failure.

    The keep-alive is started lazily before the first privileged step that
    actually has work to do, and is stopped however the run ends.
    """
    console = console or get_console()
    total = len(steps)
    outcomes: List[StepOutcome] = []

    try:
        for index, step in enumerate(steps, start=1):
            console.print_step(index, total, step.description)
            try:
                status = _execute_step(index, step, system, keepalive, dry_run)
            except StepFailure as failure:
                cause = failure.__cause__
                hint = _hint_for(cause.cmd) if isinstance(cause, CommandFailed) else None
                console.print_failure(
                    step.description,
                    failure.message or str(cause or failure),
                    exit_code=failure.exit_code,
                    hint=hint,
                )
                raise

            if status == "skipped":
                console.print_step_skipped()
            elif status == "pending":
                console.print_step_pending()
            else:
                console.print_success()
            outcomes.append(StepOutcome(index=index, description=step.description, status=status))
    finally:
        if keepalive is not None:
            keepalive.stop()

    return outcomes
