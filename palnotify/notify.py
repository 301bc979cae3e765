from __future__ import annotations

import datetime as dt
from typing import List, Optional

from .logger import Logger
from .metrics import FreeMemoryProvider, MemInfo
from .presence import JOINED, LEFT, NULL_MARKER, RENAMED, PresenceEvent, PresenceTracker
from .rcon_client import RconClient, RconError
from .romanize import Romanizer


PLACEHOLDER = "?"
BROADCAST_ATTEMPTS = 10
SERVER_CAPACITY = 32

TIME_LAYOUT = "%H:%M"
DATE_TIME_LAYOUT = "%m/%d_%H:%M"
STATUS_MINUTES = (0, 30)

JOIN_TEMPLATE = "[%s]player-joined:%s(%d/%d)"
LEAVE_TEMPLATE = "[%s]player-left:%s(%d/%d)"
STATUS_TEMPLATE = "---%s---(%d/%d)%s"
ONLINE_PREFIX = "Online:"


class BroadcastError(RconError):
    def __init__(self, message: str, errors: List[Exception]) -> None:
        super().__init__(message)
        self.errors = errors


def escape_message(text: str, romanizer: Optional[Romanizer] = None) -> str:
    """Make text safe for the Broadcast command.

    The server splits arguments on spaces and mangles anything outside
    ASCII, so spaces become underscores and every non single-byte
    character becomes a placeholder.
    """
    while NULL_MARKER in text:
        text = text.replace(NULL_MARKER, "")
    if romanizer is not None:
        text = romanizer(text)
    text = text.replace(" ", "_").strip()
    return "".join(ch if ord(ch) < 0x80 else PLACEHOLDER for ch in text)


def format_memory(mem: MemInfo) -> str:
    percent = mem.used_percent
    if percent is None:
        return "<Mem:?>"
    return f"<Mem:{percent:.1f}%>"


class Notifier:
    def __init__(
        self,
        rcon: RconClient,
        logger: Logger,
        romanizer: Optional[Romanizer] = None,
        attempts: int = BROADCAST_ATTEMPTS,
        capacity: int = SERVER_CAPACITY,
    ) -> None:
        self._rcon = rcon
        self._logger = logger
        self._romanizer = romanizer
        self._attempts = max(attempts, 1)
        self.capacity = capacity

    def broadcast(self, message: str) -> str:
        message = escape_message(message, self._romanizer)

        errors: List[Exception] = []
        for attempt in range(1, self._attempts + 1):
            try:
                self._rcon.broadcast(message)
            except (OSError, RconError) as exc:
                errors.append(exc)
                self._logger.error(
                    f"failed to broadcast (attempt {attempt}/{self._attempts}): {exc}"
                )
                continue
            self._logger.log(f"send broadcast: {message}")
            return message

        raise BroadcastError(
            f"failed to broadcast after {self._attempts} attempts: {errors[-1]}",
            errors,
        )

    def notify(self, template: str, *args: object) -> str:
        return self.broadcast(template % args if args else template)

    def announce(self, event: PresenceEvent, now: dt.datetime) -> None:
        if event.kind == RENAMED:
            self._logger.log(f"Player renamed: {event.previous_name} -> {event.name}")
            return

        if event.kind not in (JOINED, LEFT):
            self._logger.error(f"Unknown presence event {event.kind!r} for {event.name}")
            return

        template = JOIN_TEMPLATE if event.kind == JOINED else LEAVE_TEMPLATE
        try:
            self.notify(
                template,
                now.strftime(TIME_LAYOUT),
                event.name,
                event.online_count,
                self.capacity,
            )
        except BroadcastError as exc:
            self._logger.error(str(exc))


class StatusReporter:
    """Posts the roster size and memory usage on the hour and half hour."""

    def __init__(
        self,
        notifier: Notifier,
        tracker: PresenceTracker,
        metrics: FreeMemoryProvider,
        logger: Logger,
    ) -> None:
        self._notifier = notifier
        self._tracker = tracker
        self._metrics = metrics
        self._logger = logger
        self._sent = False

    def maybe_report(self, now: dt.datetime) -> bool:
        if now.minute not in STATUS_MINUTES:
            self._sent = False
            return False
        if self._sent:
            return False

        # At most one report per window, even when the broadcast fails.
        self._sent = True
        self.report(now)
        return True

    def report(self, now: dt.datetime) -> None:
        mem = self._metrics.read()
        self._logger.log(f"mem used={mem.used} total={mem.total}")

        layout = DATE_TIME_LAYOUT if now.minute == 0 else TIME_LAYOUT
        names = self._tracker.online_names()
        try:
            self._notifier.notify(
                STATUS_TEMPLATE,
                now.strftime(layout),
                len(names),
                self._notifier.capacity,
                format_memory(mem),
            )
            self._notifier.broadcast(ONLINE_PREFIX + ",".join(names))
        except BroadcastError as exc:
            self._logger.error(str(exc))
