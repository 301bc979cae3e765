from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass
from typing import Optional

from .logger import Logger


@dataclass(frozen=True)
class MemInfo:
    total: int = 0
    used: int = 0

    @property
    def used_percent(self) -> Optional[float]:
        if self.total <= 0:
            return None
        return self.used * 100 / self.total


def parse_free_output(output: str) -> MemInfo:
    """Read total and used bytes from the first data row of ``free -b``."""
    lines = output.splitlines()
    if len(lines) < 2 or not lines[1].strip():
        return MemInfo()

    fields = re.split(r"\s+", lines[1].strip())
    if len(fields) < 3:
        return MemInfo()

    try:
        total = int(fields[1])
    except ValueError:
        return MemInfo()
    try:
        used = int(fields[2])
    except ValueError:
        return MemInfo(total=total)
    return MemInfo(total=total, used=used)


class FreeMemoryProvider:
    def __init__(self, logger: Optional[Logger] = None, timeout: float = 10.0) -> None:
        self._logger = logger
        self._timeout = timeout

    def read(self) -> MemInfo:
        try:
            proc = subprocess.run(
                ["free", "-b"],
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            self._log(f"failed to run free: {exc}")
            return MemInfo()

        if proc.returncode != 0:
            self._log(f"failed to run free: exit {proc.returncode}")
            return MemInfo()

        info = parse_free_output(proc.stdout or "")
        if not info.total:
            self._log("failed to parse free output")
        return info

    def _log(self, message: str) -> None:
        if self._logger:
            self._logger.error(message)
