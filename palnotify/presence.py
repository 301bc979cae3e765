from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from types import MappingProxyType
from typing import Deque, Dict, Iterable, List, Mapping, Optional, Set

from .logger import Logger
from .players import Player


UNKNOWN_ID = "00000000"
# Literal text the server emits in place of missing ID bytes, not a real NUL.
NULL_MARKER = "\\x00"

MIN_UID_LENGTH = 9
MIN_STEAM_UID_LENGTH = 12
NOTIFICATION_THRESHOLD = 3
HISTORY_DEPTH = 3

JOINED = "joined"
LEFT = "left"
RENAMED = "renamed"


def has_name_key(player: Player) -> bool:
    return bool(player.name) and player.steam_id != UNKNOWN_ID


def has_uid_key(player: Player) -> bool:
    return (
        player.player_uid != UNKNOWN_ID
        and player.steam_id != UNKNOWN_ID
        and len(player.player_uid) >= MIN_UID_LENGTH
    )


def has_steam_key(player: Player) -> bool:
    return (
        bool(player.steam_id)
        and player.steam_id != UNKNOWN_ID
        and NULL_MARKER not in player.steam_id
        and len(player.player_uid) >= MIN_STEAM_UID_LENGTH
    )


@dataclass(frozen=True)
class Snapshot:
    """Players seen on one tick, indexed by every usable identity key.

    Key collisions are last-write-wins.
    """

    by_name: Mapping[str, Player]
    by_uid: Mapping[str, Player]
    by_steam_id: Mapping[str, Player]

    @classmethod
    def build(cls, players: Iterable[Player]) -> "Snapshot":
        by_name: Dict[str, Player] = {}
        by_uid: Dict[str, Player] = {}
        by_steam_id: Dict[str, Player] = {}
        for player in players:
            if has_name_key(player):
                by_name[player.name] = player
            if has_uid_key(player):
                by_uid[player.player_uid] = player
            if has_steam_key(player):
                by_steam_id[player.steam_id] = player
        return cls(
            by_name=MappingProxyType(by_name),
            by_uid=MappingProxyType(by_uid),
            by_steam_id=MappingProxyType(by_steam_id),
        )

    def resolve(self, player: Player) -> str:
        """Name this snapshot knows the player by, via UID then SteamID."""
        name = player.name
        match = self.by_uid.get(player.player_uid)
        if match is not None:
            name = match.name
        match = self.by_steam_id.get(player.steam_id)
        if match is not None:
            name = match.name
        return name


@dataclass(frozen=True)
class PresenceEvent:
    kind: str
    player: Player
    online_count: int
    previous_name: Optional[str] = None

    @property
    def name(self) -> str:
        return self.player.name


class PresenceTracker:
    """Debounces raw roster snapshots into confirmed join/leave events.

    A join or leave has to be observed on ``threshold`` consecutive ticks
    before the roster changes. UID and SteamID are used to recognise a
    player whose displayed name changed between ticks.
    """

    def __init__(
        self,
        threshold: int = NOTIFICATION_THRESHOLD,
        logger: Optional[Logger] = None,
    ) -> None:
        self.threshold = threshold
        self._logger = logger
        self.roster: Dict[str, Player] = {}
        self.appearances: Dict[str, int] = {}
        self.disappearances: Dict[str, int] = {}
        self.history: Deque[Snapshot] = deque(maxlen=HISTORY_DEPTH)

    @property
    def seeded(self) -> bool:
        return bool(self.history)

    def online_names(self) -> List[str]:
        return list(self.roster)

    def update(self, players: Iterable[Player]) -> List[PresenceEvent]:
        snapshot = Snapshot.build(players)

        if not self.history:
            self.roster = dict(snapshot.by_name)
            self.history.append(snapshot)
            self._log(f"Roster seeded with {len(self.roster)} players")
            return []

        previous = self.history[-1]
        events: List[PresenceEvent] = []
        appeared: Set[str] = set()
        disappeared: Set[str] = set()

        self._detect_joins(snapshot, previous, events, appeared)
        self._detect_leaves(snapshot, events, disappeared)

        # Counters only survive while the observation is consecutive.
        _expire(self.appearances, appeared)
        _expire(self.disappearances, disappeared)

        self.history.append(snapshot)
        return events

    def _detect_joins(
        self,
        current: Snapshot,
        previous: Snapshot,
        events: List[PresenceEvent],
        appeared: Set[str],
    ) -> None:
        for name, player in current.by_name.items():
            if name in self.roster:
                continue

            identity = previous.resolve(player)

            if self._swap_nickname_bug(player, events):
                continue

            if identity in self.roster:
                continue

            self.disappearances.pop(identity, None)
            count = self.appearances.get(identity, 0) + 1
            self.appearances[identity] = count
            appeared.add(identity)
            self._log(f"playerAppearances:{identity} count={count}")

            if count < self.threshold:
                continue

            del self.appearances[identity]
            events.append(self._confirm_join(player))

    def _swap_nickname_bug(self, player: Player, events: List[PresenceEvent]) -> bool:
        # A player that keeps arriving while another keeps vanishing is
        # most likely one client whose nickname got corrupted.
        pending = self.threshold - 1
        if self.appearances.get(player.name) != pending:
            return False

        gone = next(
            (name for name, count in self.disappearances.items() if count == pending),
            None,
        )
        if gone is None:
            return False

        self._log(f"nameChange:{gone} newName={player.name}")
        del self.appearances[player.name]
        del self.disappearances[gone]
        self.roster.pop(gone, None)
        self.roster[player.name] = player
        events.append(
            PresenceEvent(RENAMED, player, len(self.roster), previous_name=gone)
        )
        return True

    def _confirm_join(self, player: Player) -> PresenceEvent:
        same = self._find_same_person(player)
        if same is not None:
            self._log(f"nameChange:{same} newName={player.name}")
            del self.roster[same]
            self.disappearances.pop(same, None)
            self.roster[player.name] = player
            return PresenceEvent(RENAMED, player, len(self.roster), previous_name=same)

        self.roster[player.name] = player
        self._log(f"Player joined: {player}")
        return PresenceEvent(JOINED, player, len(self.roster))

    def _find_same_person(self, player: Player) -> Optional[str]:
        for name, known in self.roster.items():
            if name == player.name:
                continue
            if (
                has_uid_key(player)
                and has_uid_key(known)
                and known.player_uid == player.player_uid
            ):
                return name
            if (
                has_steam_key(player)
                and has_steam_key(known)
                and known.steam_id == player.steam_id
            ):
                return name
        return None

    def _detect_leaves(
        self,
        current: Snapshot,
        events: List[PresenceEvent],
        disappeared: Set[str],
    ) -> None:
        for name, player in list(self.roster.items()):
            if player.name in current.by_name:
                continue

            identity = current.resolve(player)
            if identity in current.by_name:
                continue

            self.appearances.pop(identity, None)
            count = self.disappearances.get(identity, 0) + 1
            self.disappearances[identity] = count
            disappeared.add(identity)
            self._log(f"playerDisappearances:{identity} count={count}")

            if count < self.threshold:
                continue

            del self.disappearances[identity]
            del self.roster[name]
            self._log(f"Player left: {player}")
            events.append(PresenceEvent(LEFT, player, len(self.roster)))

    def _log(self, message: str) -> None:
        if self._logger:
            self._logger.log(message)


def _expire(counters: Dict[str, int], observed: Set[str]) -> None:
    for name in [name for name in counters if name not in observed]:
        del counters[name]
