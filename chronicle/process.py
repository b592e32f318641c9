"""Subprocess execution used for every git invocation."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Union

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """Captured output of one external command."""

    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def diagnostic(self) -> str:
        """Best available error text for reporting a failure."""
        return (self.stderr or self.stdout).strip()


class ProcessRunner:
    """Runs commands without a shell and never raises on a non-zero exit."""

    def run(
        self, args: Sequence[str], cwd: Union[str, Path]
    ) -> ProcessResult:
        cmd = [str(a) for a in args]
        logger.debug("run %s (cwd=%s)", " ".join(cmd), cwd)
        try:
            completed = subprocess.run(
                cmd,
                cwd=str(cwd),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except OSError as exc:
            # missing executable, or an unusable working directory
            return ProcessResult(args=cmd, returncode=127, stderr=str(exc))
        return ProcessResult(
            args=cmd,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
