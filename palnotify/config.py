from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .utils import parse_duration, read_text


DEFAULT_RCON_PORT = 25575

# Environment variables take precedence over the config file.
ENV_KEYS = {
    "RCON_ENDPOINT": "RCONEndpoint",
    "RCON_PASSWORD": "RCONPassword",
    "INTERVAL": "Interval",
    "TIMEOUT": "Timeout",
    "UCONV_LATIN": "UconvLatin",
    "TIMEZONE": "TimeZone",
    "MAX_PLAYERS": "MaxPlayers",
    "NOTIFICATION_THRESHOLD": "NotificationThreshold",
    "BROADCAST_ATTEMPTS": "BroadcastAttempts",
    "LOG_PATH": "LogPath",
    "DEBUG": "Debug",
}


class ConfigError(ValueError):
    pass


def load_kv_file(path: Path) -> Dict[str, str]:
    data: Dict[str, str] = {}
    if not path.exists():
        return data

    for raw_line in read_text(path).splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or line.startswith(";"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        data[key.strip()] = value.strip()
    return data


def _as_int(value: Optional[str], default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in ("false", "0", "no", "off")


def _as_duration(key: str, value: str) -> float:
    try:
        return parse_duration(value)
    except ValueError as exc:
        raise ConfigError(f"failed to parse {key}: {exc}") from exc


def _resolve_path(value: str, base_dir: Path) -> Path:
    path = Path(value)
    if path.is_absolute():
        return path
    return (base_dir / path).resolve()


def _optional_path(value: Optional[str], base_dir: Path) -> Optional[Path]:
    if value is None:
        return None
    raw = value.strip()
    if not raw:
        return None
    if raw.lower() in ("none", "off", "false"):
        return None
    return _resolve_path(raw, base_dir)


def parse_endpoint(value: str) -> Tuple[str, int]:
    host, sep, port = value.strip().rpartition(":")
    if not sep:
        return value.strip(), DEFAULT_RCON_PORT
    if not host or not port.isdigit():
        raise ConfigError(f"invalid RCON endpoint {value!r}")
    return host.strip("[]"), int(port)


def _load_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"failed to load time zone {name!r}: {exc}") from exc


@dataclass
class WatcherConfig:
    rcon_host: str
    rcon_port: int
    rcon_password: str
    interval_sec: float
    timeout_sec: float
    uconv_latin: bool
    timezone: ZoneInfo
    max_players: int
    notification_threshold: int
    broadcast_attempts: int
    log_path: Optional[Path]
    debug: bool


def load_config(
    config_path: Path,
    overrides: Optional[Dict[str, str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> WatcherConfig:
    config_path = config_path.resolve()
    base_dir = config_path.parent
    if environ is None:
        environ = os.environ

    data = load_kv_file(config_path)
    for env_key, key in ENV_KEYS.items():
        if environ.get(env_key):
            data[key] = environ[env_key]
    if overrides:
        data.update({k: str(v) for k, v in overrides.items() if v is not None})

    if "RCONEndpoint" in data:
        rcon_host, rcon_port = parse_endpoint(data["RCONEndpoint"])
    else:
        rcon_host = data.get("RCONHost", "127.0.0.1")
        rcon_port = _as_int(data.get("RCONPort"), DEFAULT_RCON_PORT)

    return WatcherConfig(
        rcon_host=rcon_host,
        rcon_port=rcon_port,
        rcon_password=data.get("RCONPassword", ""),
        interval_sec=_as_duration("Interval", data.get("Interval", "5s")),
        timeout_sec=_as_duration("Timeout", data.get("Timeout", "1s")),
        uconv_latin=_as_bool(data.get("UconvLatin"), True),
        timezone=_load_timezone(data.get("TimeZone", "Asia/Tokyo")),
        max_players=_as_int(data.get("MaxPlayers"), 32),
        notification_threshold=_as_int(data.get("NotificationThreshold"), 3),
        broadcast_attempts=_as_int(data.get("BroadcastAttempts"), 10),
        log_path=_optional_path(data.get("LogPath"), base_dir),
        debug=_as_bool(data.get("Debug"), False),
    )
