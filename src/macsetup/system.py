# system.py
# Handle on the machine being provisioned.
# Every subprocess and every HTTP fetch goes through this class so that steps
# never call subprocess directly and tests can swap the two low-level hooks.

from __future__ import annotations

import os
import platform
import shutil
import subprocess
import tempfile
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

BREW_PREFIXES = ("/opt/homebrew/bin/brew", "/usr/local/bin/brew")


@dataclass
class CommandFailed(Exception):
    """An external command exited with a non-zero status."""
    cmd: List[str]
    exit_code: int
    stderr: str = ""

    def __str__(self) -> str:
        msg = f"command failed (exit={self.exit_code}): {' '.join(self.cmd)}"
        if self.stderr:
            msg += f"\n{self.stderr.strip()}"
        return msg


class System:
    """
    The external-system handle passed to every step.

    Args:
        home: Home directory of the operator (defaults to ~)
        env: Base environment for child processes (defaults to os.environ)
    """

    def __init__(self, home: Optional[Path] = None, env: Optional[Dict[str, str]] = None):
        self.home = Path(home) if home is not None else Path.home()
        self.env = dict(os.environ if env is None else env)

    # ------------------------------------------------------------------
    # Low-level hooks (overridden in tests)
    # ------------------------------------------------------------------

    def _execute(
        self,
        args: List[str],
        *,
        capture: bool,
        env: Dict[str, str],
        input: Optional[str] = None,
    ) -> Tuple[int, str, str]:
        proc = subprocess.run(
            args,
            env=env,
            input=input,
            text=True,
            capture_output=capture,
        )
        return proc.returncode, proc.stdout or "", proc.stderr or ""

    def fetch(self, url: str) -> str:
        """Download a text resource (install scripts, defaults scripts)."""
        req = urllib.request.Request(url, headers={"User-Agent": "macsetup"})
        with urllib.request.urlopen(req) as response:
            return response.read().decode("utf-8")

    # ------------------------------------------------------------------
    # Command helpers
    # ------------------------------------------------------------------

    def _argv(self, args: Sequence[str], sudo: bool) -> List[str]:
        argv = [str(a) for a in args]
        if sudo:
            argv = ["sudo", *argv]
        return argv

    def _child_env(self, extra: Optional[Dict[str, str]]) -> Dict[str, str]:
        env = dict(self.env)
        if extra:
            env.update(extra)
        return env

    def run(
        self,
        args: Sequence[str],
        *,
        sudo: bool = False,
        env: Optional[Dict[str, str]] = None,
        input: Optional[str] = None,
    ) -> None:
        """Run a mutating command with output going to the terminal."""
        argv = self._argv(args, sudo)
        code, _out, err = self._execute(argv, capture=False, env=self._child_env(env), input=input)
        if code != 0:
            raise CommandFailed(cmd=argv, exit_code=code, stderr=err)

    def output(self, args: Sequence[str], *, sudo: bool = False) -> str:
        """Run a command and return its stripped stdout; non-zero exit raises."""
        argv = self._argv(args, sudo)
        code, out, err = self._execute(argv, capture=True, env=self._child_env(None))
        if code != 0:
            raise CommandFailed(cmd=argv, exit_code=code, stderr=err)
        return out.strip()

    def probe(self, args: Sequence[str]) -> Tuple[int, str]:
        """
        Run a read-only query and return (exit_code, combined output).

        Never raises on non-zero exit; a missing executable reads as 127.
        """
        argv = self._argv(args, False)
        try:
            code, out, err = self._execute(argv, capture=True, env=self._child_env(None))
        except FileNotFoundError:
            return 127, ""
        return code, (out + err).strip()

    def run_script(
        self,
        content: str,
        *,
        interpreter: str = "/bin/bash",
        args: Sequence[str] = (),
        env: Optional[Dict[str, str]] = None,
    ) -> None:
        """Write a downloaded script to a temp file and execute it."""
        fd, path = tempfile.mkstemp(prefix="macsetup-", suffix=".sh")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            self.run([interpreter, path, *args], env=env)
        finally:
            Path(path).unlink(missing_ok=True)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def which(self, name: str) -> Optional[str]:
        return shutil.which(name, path=self.env.get("PATH"))

    def brew(self) -> Optional[str]:
        """Path to the brew executable, even before the shell PATH knows it."""
        found = self.which("brew")
        if found:
            return found
        for candidate in BREW_PREFIXES:
            if Path(candidate).exists():
                return candidate
        return None

    def computer_name(self) -> str:
        """Current ComputerName, or the host name where scutil is unavailable."""
        code, out = self.probe(["scutil", "--get", "ComputerName"])
        if code == 0 and out:
            return out
        return platform.node().split(".")[0]

    def append_line(self, path: Path, line: str) -> None:
        """Append one line to a text file, creating it and fixing a missing trailing newline."""
        path.parent.mkdir(parents=True, exist_ok=True)
        existing = path.read_text(encoding="utf-8") if path.exists() else ""
        with path.open("a", encoding="utf-8") as f:
            if existing and not existing.endswith("\n"):
                f.write("\n")
            f.write(line.rstrip("\n") + "\n")
