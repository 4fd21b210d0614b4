#!/usr/bin/env python3
"""Run the reminder and escalation passes.

With ``--once`` the daily passes (and optionally the weekly summary) run a
single time and the script exits. Otherwise the scheduler polls until
interrupted, running each pass at its configured time of day.

Backends and cadence come from the environment (see ``LoanPactConfig.from_env``).
"""

import argparse
import signal
import sys
import threading
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loan_pact.bootstrap import build_services
from loan_pact.config import LoanPactConfig
from loan_pact.exceptions import ConfigurationError
from loan_pact.logging import configure_from, get_logger
from loan_pact.notifications.runner import SchedulerRunner
from loan_pact.store import PostgresStore

logger = get_logger(__name__)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Run loan-pact reminder and escalation passes")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run the daily passes once and exit",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="With --once, also run the weekly summary pass",
    )
    parser.add_argument(
        "--catch-up",
        action="store_true",
        help="Run passes whose time already passed today at start-up",
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create PostgreSQL tables before starting (postgres store only)",
    )
    args = parser.parse_args()

    try:
        config = LoanPactConfig.from_env()
        configure_from(config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    services = build_services(config)
    if args.create_schema and isinstance(services.store, PostgresStore):
        services.store.create_schema()

    try:
        if args.once:
            for report in services.scheduler.sweep(include_summary=args.summary):
                print(
                    f"{report.name:<14} examined={report.examined} emitted={report.emitted} "
                    f"skipped={report.skipped} failed={report.failed}"
                )
            return

        stop_event = threading.Event()

        def handle_signal(signum, frame):
            logger.info("Received signal %d, stopping", signum)
            stop_event.set()

        signal.signal(signal.SIGINT, handle_signal)
        signal.signal(signal.SIGTERM, handle_signal)

        runner = SchedulerRunner.from_config(
            services.scheduler, config.scheduler, services.clock, catch_up=args.catch_up
        )
        runner.run_forever(stop_event)
    finally:
        services.close()


if __name__ == "__main__":
    main()
