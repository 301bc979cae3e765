"""
Shared test fixtures for the palnotify test suite.

Provides:
- FakeRcon, an in-memory stand-in for RconClient with canned responses
- A console-only Logger
- Helpers for building ShowPlayers responses
"""

import datetime as dt

import pytest

from palnotify.logger import Logger
from palnotify.metrics import MemInfo
from palnotify.players import PLAYERS_COMMAND, Player
from palnotify.rcon_client import RconError

HEADER = "name,playeruid,steamid"


class FakeRcon:
    endpoint = "fake:25575"

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.commands = []
        self.broadcasts = []
        self.broadcast_failures = 0
        self.broadcast_attempts = 0

    def execute(self, command):
        self.commands.append(command)
        if command == PLAYERS_COMMAND:
            item = self.responses.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        return ""

    def broadcast(self, message):
        self.broadcast_attempts += 1
        if self.broadcast_failures:
            self.broadcast_failures -= 1
            raise RconError("i/o timeout")
        self.broadcasts.append(message)
        return ""


class FakeMemory:
    def __init__(self, total=0, used=0):
        self.info = MemInfo(total=total, used=used)

    def read(self):
        return self.info


def roster_text(*players: Player) -> str:
    """Render players the way ShowPlayers does."""
    lines = [HEADER]
    for p in players:
        lines.append(f"{p.name},{p.player_uid},{p.steam_id}")
    return "\n".join(lines) + "\n"


def at(hour: int, minute: int) -> dt.datetime:
    return dt.datetime(2024, 3, 5, hour, minute, 12, tzinfo=dt.timezone.utc)


@pytest.fixture
def logger():
    return Logger(None)


@pytest.fixture
def fake_rcon():
    return FakeRcon()
