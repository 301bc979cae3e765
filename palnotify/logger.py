from __future__ import annotations

from pathlib import Path
from typing import Optional

from .utils import now_str


DEBUG = "DEBUG"
INFO = "INFO"
ERROR = "ERROR"


class Logger:
    def __init__(self, log_path: Optional[Path], debug: bool = False) -> None:
        self._log_path = log_path
        self._debug = debug
        if self._log_path:
            self._log_path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, message: str, level: str = INFO) -> None:
        if level == DEBUG and not self._debug:
            return
        line = f"[{now_str()}] {level} {message}"
        print(line, flush=True)
        if not self._log_path:
            return
        with self._log_path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")

    def debug(self, message: str) -> None:
        self.log(message, DEBUG)

    def error(self, message: str) -> None:
        self.log(message, ERROR)
