# state.py
from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Dict, Optional

# ---------------------------------------------------------------------
# Stamps
# ---------------------------------------------------------------------
# Some actions leave nothing on the machine that can be read back cheaply
# (a remote defaults script only runs `defaults write`). For those, a step
# records a stamp after success:
#
#   ~/.macsetup/state/<name>.json
#
# and treats a matching stamp as "already satisfied" on the next run.
# ---------------------------------------------------------------------


def _json_dumps_stable(obj) -> str:
    return json.dumps(obj, sort_keys=True, indent=2, ensure_ascii=False)


class StateStore:
    """
    File-based stamp store:
      root/
        <name>.json
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)

    @classmethod
    def for_home(cls, home: Path) -> "StateStore":
        return cls(Path(home) / ".macsetup" / "state")

    def path(self, name: str) -> Path:
        return self.root / f"{name}.json"

    def get(self, name: str) -> Optional[Dict]:
        p = self.path(name)
        if not p.exists():
            return None
        try:
            return json.loads(p.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            # unreadable stamp counts as missing; the step simply runs again
            return None

    def put(self, name: str, data: Dict) -> Dict:
        """Write a stamp atomically. Returns what was stored."""
        self.root.mkdir(parents=True, exist_ok=True)
        record = dict(data)
        record["recorded_at_unix"] = int(time.time())

        p = self.path(name)
        tmp = p.with_suffix(".json.tmp")
        try:
            tmp.write_text(_json_dumps_stable(record), encoding="utf-8")
            tmp.replace(p)
        finally:
            if tmp.exists():
                tmp.unlink(missing_ok=True)
        return record
