"""
Background collector process.

This module:
- reads the interface table (real sysctl or stub)
- folds it into the in-memory StatStore through the CounterNormalizer
- writes one InterfaceStat row per known interface into the database

Run it as:

    $env:USE_IFLIST_STUB="1"
    python -m netrate.collector

or, on macOS:

    USE_IFLIST_STUB=0 python -m netrate.collector
"""

import logging
import time
from datetime import datetime, timezone
from typing import List

from sqlalchemy.orm import Session

from netrate.config import settings
from netrate.cycle import run_cycle
from netrate.database import SessionLocal, init_db
from netrate.iflist import AcquisitionError, open_table
from netrate.models import InterfaceStat
from netrate.normalizer import CounterNormalizer
from netrate.records import MalformedBufferError, RecordLayout
from netrate.store import InterfaceReport, StatStore

logger = logging.getLogger(__name__)


def record_reports(db: Session, reports: List[InterfaceReport]) -> None:
    """Add one InterfaceStat per report, all stamped with the same time."""
    ts = datetime.now(timezone.utc)
    for report in reports:
        db.add(
            InterfaceStat(
                ts=ts,
                if_name=report.name,
                total_in_bytes=report.total_in,
                total_out_bytes=report.total_out,
                in_bytes_per_sec=report.in_rate,
                out_bytes_per_sec=report.out_rate,
            )
        )


def poll_once(db: Session, table, store: StatStore, normalizer: CounterNormalizer, layout: RecordLayout) -> bool:
    """
    Read the interface table once, update the store and queue the reports.

    Returns False when the cycle was skipped because the table could not
    be read or decoded.
    """
    try:
        buffer, captured_at = table.read()
    except AcquisitionError as exc:
        logger.error("Could not read interface table: %s", exc)
        return False

    try:
        applied = run_cycle(store, normalizer, buffer, captured_at, layout)
    except MalformedBufferError as exc:
        logger.error("Skipping cycle, malformed interface table (%d bytes): %s", len(buffer), exc)
        return False

    reports = list(store.report())
    for report in reports:
        logger.debug(
            "%s: in=%d out=%d in_rate=%.1f B/s out_rate=%.1f B/s",
            report.name, report.total_in, report.total_out, report.in_rate, report.out_rate,
        )
    record_reports(db, reports)
    logger.info("Cycle done: %d interfaces updated, %d reported", applied, len(reports))
    return True


def main() -> None:
    """
    Main collector loop: read, normalize, commit, sleep, repeat.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    init_db()

    layout = RecordLayout(counter_bits=settings.counter_bits)
    normalizer = CounterNormalizer(
        counter_bits=settings.counter_bits,
        stale_after=settings.stale_after_seconds,
        epsilon=settings.rate_epsilon_seconds,
    )
    store = StatStore()
    table = open_table(layout)

    logger.info("Starting interface collector loop (%s)", type(table).__name__)
    logger.info("Poll interval: %s seconds", settings.poll_interval_seconds)

    while True:
        with SessionLocal() as db:
            if poll_once(db, table, store, normalizer, layout):
                db.commit()
        time.sleep(settings.poll_interval_seconds)


if __name__ == "__main__":
    main()
