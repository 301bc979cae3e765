from __future__ import annotations

import argparse
import datetime as dt
import time
from pathlib import Path
from typing import Callable, Optional

from .config import ConfigError, WatcherConfig, load_config
from .logger import Logger
from .metrics import FreeMemoryProvider
from .notify import Notifier, StatusReporter
from .players import get_players
from .presence import PresenceTracker
from .rcon_client import RconClient, RconError
from .romanize import CommandRomanizer


Clock = Callable[[], dt.datetime]


def _default_config_path() -> Path:
    base_dir = Path(__file__).resolve().parent.parent
    return base_dir / "palnotify.conf"


class Watcher:
    """Polls the roster, announces confirmed changes and posts status reports.

    Ticks run strictly one after another; a failed roster fetch leaves all
    state untouched until the next tick.
    """

    def __init__(
        self,
        rcon: RconClient,
        tracker: PresenceTracker,
        notifier: Notifier,
        status: StatusReporter,
        logger: Logger,
        clock: Clock,
        interval_sec: float,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.rcon = rcon
        self.tracker = tracker
        self.notifier = notifier
        self.status = status
        self.logger = logger
        self.clock = clock
        self.interval_sec = interval_sec
        self._sleep = sleep

    def run_tick(self) -> None:
        try:
            players = get_players(self.rcon)
        except (OSError, RconError) as exc:
            self.logger.error(f"failed to get players: {exc}")
            return

        self.logger.debug(f"Current players: {players}")
        seeding = not self.tracker.seeded
        events = self.tracker.update(players)
        if seeding:
            return

        now = self.clock()
        for event in events:
            self.notifier.announce(event, now)
        self.status.maybe_report(now)

    def run_forever(self, once: bool = False) -> None:
        while True:
            try:
                self.run_tick()
            except Exception as exc:
                self.logger.error(f"Tick failed: {exc!r}")
            if once:
                return
            self._sleep(self.interval_sec)


def build_watcher(cfg: WatcherConfig, logger: Logger, clock: Optional[Clock] = None) -> Watcher:
    rcon = RconClient(
        host=cfg.rcon_host,
        port=cfg.rcon_port,
        password=cfg.rcon_password,
        timeout=cfg.timeout_sec,
    )
    tracker = PresenceTracker(threshold=cfg.notification_threshold, logger=logger)
    romanizer = CommandRomanizer(logger) if cfg.uconv_latin else None
    notifier = Notifier(
        rcon,
        logger,
        romanizer=romanizer,
        attempts=cfg.broadcast_attempts,
        capacity=cfg.max_players,
    )
    status = StatusReporter(notifier, tracker, FreeMemoryProvider(logger), logger)
    if clock is None:
        tz = cfg.timezone

        def clock() -> dt.datetime:
            return dt.datetime.now(tz)

    return Watcher(
        rcon=rcon,
        tracker=tracker,
        notifier=notifier,
        status=status,
        logger=logger,
        clock=clock,
        interval_sec=cfg.interval_sec,
    )


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Announce Palworld player joins and leaves over RCON."
    )
    parser.add_argument(
        "--config",
        default=str(_default_config_path()),
        help="Path to palnotify.conf (environment variables override it)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single tick and exit.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log every roster snapshot.",
    )
    args = parser.parse_args()

    overrides = {"Debug": "true"} if args.debug else None
    try:
        cfg = load_config(Path(args.config), overrides)
    except ConfigError as exc:
        Logger(None).error(f"Configuration error: {exc}")
        return 1

    logger = Logger(cfg.log_path, debug=cfg.debug)
    if not cfg.rcon_password:
        logger.log("RCON password missing. Set RCON_PASSWORD or RCONPassword in palnotify.conf.")

    watcher = build_watcher(cfg, logger)
    logger.log(f"Watcher started for {watcher.rcon.endpoint}.")
    try:
        watcher.run_forever(once=args.once)
    except KeyboardInterrupt:
        pass

    logger.log("Watcher stopped.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
