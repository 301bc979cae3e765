import argparse
import sys
from pathlib import Path

from palnotify.config import ConfigError, load_config
from palnotify.notify import escape_message
from palnotify.rcon_client import RconClient, RconError
from palnotify.romanize import CommandRomanizer


CONFIG_PATH = Path(__file__).resolve().parents[1] / "palnotify.conf"


def main():
    parser = argparse.ArgumentParser(
        description="Send an RCON command using palnotify.conf and the environment as defaults."
    )
    parser.add_argument("command", nargs="+", help="Command to send, e.g. ShowPlayers")
    parser.add_argument("--config", default=str(CONFIG_PATH), help="Path to palnotify.conf")
    parser.add_argument("--endpoint", help="Override host:port (defaults to RCONEndpoint)")
    parser.add_argument("--password", help="Override password (defaults to RCONPassword)")
    parser.add_argument("--timeout", help="Override timeout, e.g. 2s (defaults to Timeout)")
    parser.add_argument(
        "--broadcast",
        action="store_true",
        help="Send the words as one sanitized Broadcast message",
    )
    args = parser.parse_args()

    overrides = {
        "RCONEndpoint": args.endpoint,
        "RCONPassword": args.password,
        "Timeout": args.timeout,
    }
    try:
        cfg = load_config(Path(args.config), overrides)
    except ConfigError as exc:
        parser.error(str(exc))

    if not cfg.rcon_password:
        parser.error("RCONPassword is required (pass --password, set RCON_PASSWORD or RCONPassword)")

    rcon = RconClient(cfg.rcon_host, cfg.rcon_port, cfg.rcon_password, timeout=cfg.timeout_sec)
    text = " ".join(args.command)
    try:
        if args.broadcast:
            romanizer = CommandRomanizer() if cfg.uconv_latin else None
            response = rcon.broadcast(escape_message(text, romanizer))
        else:
            response = rcon.execute(text)
    except RconError as exc:
        if not exc.partial:
            print(f"RCON error: {exc}", file=sys.stderr)
            return 1
        response = exc.partial

    if response:
        print(response)
    return 0


if __name__ == "__main__":
    sys.exit(main())
