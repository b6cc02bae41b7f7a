"""
Expiration worker CLI.

Usage:
    slabstock-worker            Migrate, then sweep on the configured interval
    slabstock-worker --once     Run a single sweep and exit
"""

import argparse
import asyncio
import signal
import sys

from slabstock.config import configure_logging, get_logger, get_settings
from slabstock.core.exceptions import ConfigurationError

logger = get_logger(__name__)


async def _run(once: bool) -> int:
    from slabstock.application.services import get_expiration_sweeper
    from slabstock.infrastructure.storage.sqlite import close_pool
    from slabstock.infrastructure.storage.sqlite.migrations import initialize_database

    settings = get_settings()
    results = await initialize_database()
    if any(not r.success for r in results):
        logger.error("worker_migrations_failed")
        return 1

    sweeper = get_expiration_sweeper()
    try:
        if once:
            result = await sweeper.sweep()
            print(f"found={result.found} expired={result.expired} failed={result.failed}")
            return 0 if result.failed == 0 else 2

        if not settings.sweeper.enabled:
            logger.warning("expiration_sweeper_disabled")
            return 0

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_event.set)
            except NotImplementedError:
                # Windows event loops lack signal handlers
                pass

        await sweeper.run(stop_event)
        return 0
    finally:
        await close_pool()


def main() -> None:
    """CLI entry point for the expiration worker."""
    parser = argparse.ArgumentParser(description="Slabstock reservation expiration worker")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single sweep and exit",
    )
    args = parser.parse_args()

    try:
        configure_logging()
        code = asyncio.run(_run(args.once))
    except ConfigurationError as e:
        print(e.message, file=sys.stderr)
        for error in e.details.get("errors", []):
            print(f"  {error['field']}: {error['message']}", file=sys.stderr)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
