"""
Entry point for FocusShield.
Handles configuration flags and application startup.
"""

import argparse
import logging
from pathlib import Path

from focusshield.app import FocusShieldApp
from focusshield.data.config import Config
from focusshield.utils.admin import is_admin
from focusshield.utils.constants import APP_NAME, APP_VERSION

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="focusshield", description="Scheduled focus blocking daemon")
    parser.add_argument("--config", type=Path, help="Path to config.json")
    toggle = parser.add_mutually_exclusive_group()
    toggle.add_argument("--enable", action="store_true", help="Turn scheduled blocking on and exit")
    toggle.add_argument("--disable", action="store_true", help="Turn scheduled blocking off and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {APP_VERSION}")
    return parser


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = Config.load(args.config)

    if args.enable or args.disable:
        config.set_auto_blocking_enabled(args.enable)
        logger.info("Scheduled blocking %s", "enabled" if args.enable else "disabled")
        return 0

    if config.blocked_websites and not is_admin():
        logger.warning("Not running as administrator: websites will not be blocked, only apps")

    app = FocusShieldApp(config)
    app.run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
