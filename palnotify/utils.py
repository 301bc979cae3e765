from __future__ import annotations

import datetime as dt
import re
from pathlib import Path


_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def now_str() -> str:
    return dt.datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except UnicodeError:
        return path.read_text(encoding="cp1251", errors="replace")


def parse_duration(value: str) -> float:
    """Parse a Go-style duration such as "500ms", "5s" or "1m30s" into seconds."""
    raw = value.strip()
    if raw == "0":
        return 0.0
    if not raw:
        raise ValueError("empty duration")

    total = 0.0
    pos = 0
    while pos < len(raw):
        match = _DURATION_PART.match(raw, pos)
        if not match:
            raise ValueError(f"invalid duration {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    return total
