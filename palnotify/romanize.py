from __future__ import annotations

import re
import subprocess
from typing import Callable, List, Optional

from .logger import Logger


Romanizer = Callable[[str], str]

_KATAKANA_FIRST = 0x30A1  # ァ
_KATAKANA_LAST = 0x30F3  # ン
_KANA_OFFSET = 0x3041 - 0x30A1
_READING_FIELD = 7


def katakana_to_hiragana(text: str) -> str:
    return "".join(
        chr(ord(ch) + _KANA_OFFSET)
        if _KATAKANA_FIRST <= ord(ch) <= _KATAKANA_LAST
        else ch
        for ch in text
    )


def parse_mecab_output(output: str) -> str:
    """Join the kana reading of each token, or its surface form if it has none."""
    reading: List[str] = []
    for line in output.splitlines():
        if not line:
            continue
        word = re.split(r"\t+", line)
        if len(word) < 2:
            continue

        fields = word[1].split(",")
        if len(fields) <= _READING_FIELD or fields[_READING_FIELD] in ("", "*"):
            reading.append(word[0])
        else:
            reading.append(katakana_to_hiragana(fields[_READING_FIELD]))
    return "".join(reading)


class CommandRomanizer:
    """Romanizes text with the mecab and uconv command line tools.

    Each stage falls back to its input when the tool is missing or fails.
    """

    def __init__(self, logger: Optional[Logger] = None, timeout: float = 10.0) -> None:
        self._logger = logger
        self._timeout = timeout

    def __call__(self, text: str) -> str:
        return self.convert(text)

    def convert(self, text: str) -> str:
        return self.run_uconv_latin(self.run_mecab(text))

    def run_mecab(self, text: str) -> str:
        output = self._run(["mecab"], text)
        if output is None:
            return text
        return parse_mecab_output(output)

    def run_uconv_latin(self, text: str) -> str:
        output = self._run(["uconv", "-x", "latin"], text)
        if output is None:
            return text
        return output

    def _run(self, cmd: List[str], text: str) -> Optional[str]:
        try:
            proc = subprocess.run(
                cmd,
                input=text,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                encoding="utf-8",
                errors="replace",
            )
        except (OSError, subprocess.SubprocessError) as exc:
            self._log(f"failed to run {cmd[0]}: {exc}")
            return None

        if proc.returncode != 0:
            self._log(f"failed to run {cmd[0]}: exit {proc.returncode} {proc.stderr.strip()}")
            return None
        return proc.stdout

    def _log(self, message: str) -> None:
        if self._logger:
            self._logger.error(message)
