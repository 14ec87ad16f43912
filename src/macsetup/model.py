# model.py
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Tuple

if TYPE_CHECKING:
    from .system import System


@dataclass(frozen=True)
class Configuration:
    """Resolved settings for a run. Read by every step, never mutated."""
    timezone: str
    computer_name: str
    gatekeeper: bool
    defaults_url: str
    passphrase: str = ""
    quiet: bool = False

    def rows(self) -> List[Tuple[str, str]]:
        """(label, value) pairs for echoing back to the operator, passphrase masked."""
        return [
            ("Timezone", self.timezone),
            ("Computer name", self.computer_name),
            ("Gatekeeper", "enabled" if self.gatekeeper else "disabled"),
            ("macOS defaults URL", self.defaults_url or "(none)"),
            ("SSH key passphrase", "********" if self.passphrase else "(empty)"),
        ]


class Step:
    """
    One idempotent provisioning action.

    Subclasses provide `description` (attribute, field or property), declare
    which external state they mutate in `touches`, and implement `apply`.
    `is_satisfied` must only read state.
    """
    # `description` stays undefined here; dataclass subclasses declare it as a required field
    touches: Tuple[str, ...] = ()
    privileged: bool = False

    def is_satisfied(self, system: System) -> bool:
        return False

    def apply(self, system: System) -> None:
        raise NotImplementedError(f"{type(self).__name__}.apply")

    def __str__(self) -> str:
        return getattr(self, "description", "") or type(self).__name__


@dataclass(frozen=True)
class StepOutcome:
    index: int
    description: str
    status: str  # "ok" | "skipped" | "pending"
