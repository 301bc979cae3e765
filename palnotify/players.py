from __future__ import annotations

from dataclasses import dataclass
from typing import List

from .rcon_client import RconClient, RconError


PLAYERS_COMMAND = "ShowPlayers"


@dataclass(frozen=True)
class Player:
    name: str
    player_uid: str = ""
    steam_id: str = ""


def extract_printable(text: str) -> str:
    # Undecodable bytes arrive as U+FFFD and are kept, like any printable char.
    return "".join(ch for ch in text if ch.isprintable())


def parse_players(response: str) -> List[Player]:
    if not response:
        return []

    players: List[Player] = []
    for line in response.split("\n")[1:]:  # skip header (name,playeruid,steamid)
        if not line.strip():
            continue

        fields = line.split(",")
        name = extract_printable(fields[0])
        player_uid = extract_printable(fields[1]) if len(fields) > 1 else ""
        steam_id = extract_printable(fields[2]) if len(fields) > 2 else ""
        players.append(Player(name=name, player_uid=player_uid, steam_id=steam_id))

    return players


def get_players(rcon: RconClient) -> List[Player]:
    # ShowPlayers often times out while still delivering a usable payload.
    try:
        response = rcon.execute(PLAYERS_COMMAND)
    except RconError as exc:
        if not exc.partial:
            raise
        response = exc.partial
    return parse_players(response)
