#!/usr/bin/env python3
"""Main entrypoint — wires the alerting stack and runs the escalation engine.

Usage::

    # Run with default config
    python scripts/run.py

    # Custom config file
    python scripts/run.py --config config/settings.yaml

    # Override log level
    python scripts/run.py --log-level DEBUG

    # Evaluate one escalation tick and exit
    python scripts/run.py --once
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog

from pgalert.core.config import load_settings
from pgalert.core.logging import setup_logging
from pgalert.notify.dispatcher import NotificationDispatcher
from pgalert.stack import create_alerting_stack

logger = structlog.get_logger(__name__)


async def run(args: argparse.Namespace) -> int:
    """Start the engine and housekeeping and run until interrupted."""
    settings = load_settings(args.config)
    setup_logging(level=args.log_level)

    stack = await create_alerting_stack(settings)

    channels = (
        stack.sink.channel_names if isinstance(stack.sink, NotificationDispatcher) else []
    )
    logger.info(
        "pgalert_starting",
        channels=channels,
        policies=len(settings.escalation.policies),
        silences=len(stack.registry.silences),
        maintenance_windows=len(stack.registry.windows),
        tick_interval_secs=settings.escalation.tick_interval_secs,
    )
    if not channels:
        logger.warning("no_channels_enabled")

    for rule_id, error in stack.registry.config_issues.items():
        logger.error("rule_misconfigured", rule_id=rule_id, error=error)

    if args.once:
        events = await stack.engine.tick()
        logger.info("pgalert_tick_complete", notified=len(events))
        await stack.stop()
        return 0

    # ── Start everything ─────────────────────────────────────────
    await stack.start()
    logger.info("pgalert_running")

    # ── Wait for shutdown signal ─────────────────────────────────
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")

    # ── Graceful shutdown ────────────────────────────────────────
    logger.info("pgalert_shutting_down")
    await stack.stop()

    stats = await stack.manager.stats()
    logger.info(
        "pgalert_stopped",
        open_alerts=stats.active_count,
        unacknowledged=stats.unacknowledged_count,
    )
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the PostgreSQL alert suppression and escalation engine.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single escalation tick and exit",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
