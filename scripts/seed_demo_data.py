#!/usr/bin/env python3
"""Seed a demo dataset and walk it through one confirmation and one sweep.

Generates users and agreements with Faker, stores them in the configured
backend, confirms one agreement through the QR protocol and runs the
scheduler passes so that reminders and escalations show up in the
configured dispatcher (console by default).
"""

import argparse
import random
import sys
import time
from datetime import datetime, time as time_of_day, timedelta
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loan_pact.bootstrap import build_services
from loan_pact.clock import FixedClock
from loan_pact.config import LoanPactConfig
from loan_pact.generators import AgreementGenerator, UserGenerator
from loan_pact.logging import configure_from, get_logger
from loan_pact.models import Party
from loan_pact.store import AGREEMENTS, USERS, InMemoryStore, PostgresStore

logger = get_logger(__name__)

# Due-date offsets that exercise every scheduler branch
SCENARIO_OFFSETS = [1, -5, -10, -35]


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Seed loan-pact with demo data")
    parser.add_argument(
        "--users",
        type=int,
        default=10,
        help="Number of users to generate (default: 10)",
    )
    parser.add_argument(
        "--agreements",
        type=int,
        default=20,
        help="Number of random agreements on top of the scenario ones (default: 20)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed for reproducibility (default: 42)",
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create PostgreSQL tables first (postgres store only)",
    )
    args = parser.parse_args()

    if args.users < 2:
        parser.error("--users must be at least 2")

    config = LoanPactConfig.from_env()
    configure_from(config)

    clock = FixedClock(datetime.now().replace(microsecond=0))
    services = build_services(config, clock=clock)
    if args.create_schema and isinstance(services.store, PostgresStore):
        services.store.create_schema()

    start = time.time()
    user_gen = UserGenerator(seed=args.seed)
    agreement_gen = AgreementGenerator(seed=args.seed)

    users = list(user_gen.generate_batch(args.users, now=clock.now()))
    for user in users:
        services.store.insert(USERS, user.to_record())
    logger.info("Inserted %d users", len(users))

    offsets = SCENARIO_OFFSETS + [None] * args.agreements
    agreements = []
    for offset in offsets:
        lender, borrower = random.sample(users, 2)
        agreement = agreement_gen.generate(lender.id, borrower.id, clock.now(), due_in_days=offset)
        services.store.insert(AGREEMENTS, agreement.to_record())
        agreements.append(agreement)
    logger.info("Inserted %d agreements", len(agreements))

    # One complete confirmation through the QR protocol
    target = services.agreements.create(
        users[0].id,
        users[1].id,
        750_000,
        datetime.combine(clock.now().date() + timedelta(days=14), time_of_day(17, 0)),
    )
    payload = services.protocol.issue(target.id)
    text = services.protocol.encode(payload)
    print(f"QR payload for {target.id}: {text}")
    services.protocol.confirm(text, Party.LENDER)
    clock.advance(minutes=5)
    services.protocol.confirm(text, Party.BORROWER)
    logger.info("Agreement %s is %s", target.id, services.agreements.get(target.id).status.value)

    reports = services.scheduler.sweep(include_summary=True)
    services.close()

    elapsed = time.time() - start
    print("\n" + "=" * 60)
    print("SEED SUMMARY")
    print("=" * 60)
    if isinstance(services.store, InMemoryStore):
        for table, count in services.store.summary().items():
            print(f"  {table:<15} {count:>6}")
    for report in reports:
        print(
            f"  {report.name:<15} examined={report.examined} emitted={report.emitted} "
            f"skipped={report.skipped} failed={report.failed}"
        )
    print(f"  {'elapsed':<15} {elapsed:>6.2f}s")


if __name__ == "__main__":
    main()
