"""
Tests for configuration loading and duration parsing.
"""

import pytest

from palnotify.config import ConfigError, load_config, parse_endpoint
from palnotify.utils import parse_duration


class TestParseDuration:

    @pytest.mark.parametrize("raw, seconds", [
        ("5s", 5.0),
        ("500ms", 0.5),
        ("1m30s", 90.0),
        ("1.5h", 5400.0),
        ("0", 0.0),
    ])
    def test_valid(self, raw, seconds):
        assert parse_duration(raw) == pytest.approx(seconds)

    @pytest.mark.parametrize("raw", ["", "5", "five seconds", "5x", "s", "1m 30s"])
    def test_invalid(self, raw):
        with pytest.raises(ValueError):
            parse_duration(raw)


class TestParseEndpoint:

    def test_host_and_port(self):
        assert parse_endpoint("10.0.0.2:25575") == ("10.0.0.2", 25575)

    def test_default_port(self):
        assert parse_endpoint("palworld") == ("palworld", 25575)

    def test_bad_port(self):
        with pytest.raises(ConfigError):
            parse_endpoint("palworld:abc")


class TestLoadConfig:

    def test_defaults(self, tmp_path):
        cfg = load_config(tmp_path / "missing.conf", environ={})
        assert cfg.rcon_host == "127.0.0.1"
        assert cfg.rcon_port == 25575
        assert cfg.interval_sec == 5.0
        assert cfg.timeout_sec == 1.0
        assert cfg.uconv_latin is True
        assert cfg.timezone.key == "Asia/Tokyo"
        assert cfg.max_players == 32
        assert cfg.notification_threshold == 3
        assert cfg.broadcast_attempts == 10
        assert cfg.log_path is None
        assert cfg.debug is False

    def test_file_values(self, tmp_path):
        path = tmp_path / "palnotify.conf"
        path.write_text(
            "# comment\n"
            "RCONEndpoint = game.example:27015\n"
            "RCONPassword=hunter2\n"
            "Interval=10s\n"
            "UconvLatin=false\n"
            "LogPath=logs/palnotify.log\n"
            "MaxPlayers=not-a-number\n",
            encoding="utf-8",
        )
        cfg = load_config(path, environ={})
        assert (cfg.rcon_host, cfg.rcon_port) == ("game.example", 27015)
        assert cfg.rcon_password == "hunter2"
        assert cfg.interval_sec == 10.0
        assert cfg.uconv_latin is False
        assert cfg.log_path == (tmp_path / "logs" / "palnotify.log").resolve()
        assert cfg.max_players == 32

    def test_environment_overrides_file(self, tmp_path):
        path = tmp_path / "palnotify.conf"
        path.write_text("RCONPassword=file\nTimeout=1s\n", encoding="utf-8")
        cfg = load_config(path, environ={"RCON_PASSWORD": "env", "TIMEOUT": "250ms"})
        assert cfg.rcon_password == "env"
        assert cfg.timeout_sec == pytest.approx(0.25)

    def test_overrides_win(self, tmp_path):
        cfg = load_config(
            tmp_path / "missing.conf",
            overrides={"Debug": "true", "RCONPassword": None},
            environ={"RCON_PASSWORD": "env"},
        )
        assert cfg.debug is True
        assert cfg.rcon_password == "env"

    def test_host_port_keys(self, tmp_path):
        path = tmp_path / "palnotify.conf"
        path.write_text("RCONHost=10.1.1.1\nRCONPort=27020\n", encoding="utf-8")
        cfg = load_config(path, environ={})
        assert (cfg.rcon_host, cfg.rcon_port) == ("10.1.1.1", 27020)

    def test_invalid_duration_is_fatal(self, tmp_path):
        with pytest.raises(ConfigError, match="Interval"):
            load_config(tmp_path / "missing.conf", environ={"INTERVAL": "soon"})

    def test_unknown_timezone_is_fatal(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "missing.conf", environ={"TIMEZONE": "Mars/Olympus"})
