"""
One-off conversion of legacy ``day_schedules`` blobs into availability windows.

Input is a JSON file exported from the old ``teacher_availabilities`` table:
    [{"teacher_id": 7, "holiday_mode": false, "time_zone": "Africa/Lagos",
      "day_schedules": [{"day": "Monday", "enabled": true, "fromTime": "18:00", "toTime": "19:00"}, ...]}, ...]

Usage: python -m scripts.convert_day_schedules --input legacy.json [--dry-run]
"""

import argparse
import json
import logging
from typing import Iterable

from sqlalchemy.orm import Session

from backend.app.core.exceptions import ValidationError
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.services.availability import day_schedules_to_windows, replace_windows, set_holiday_mode

logger = logging.getLogger("convert_day_schedules")


def convert_records(db: Session, records: Iterable[dict], dry_run: bool = False) -> dict:
    """Convert every record; a bad record is reported and skipped, the rest are kept."""
    summary = {"converted": 0, "windows": 0, "failed": []}
    for record in records:
        teacher_id = record.get("teacher_id")
        try:
            windows = day_schedules_to_windows(record.get("day_schedules") or [])
            replace_windows(db, teacher_id, windows, record.get("time_zone"))
            if record.get("holiday_mode") is not None:
                set_holiday_mode(db, teacher_id, bool(record["holiday_mode"]))
        except ValidationError as exc:
            db.rollback()
            logger.warning("Teacher %s: %s %s", teacher_id, exc.message, exc.errors or "")
            summary["failed"].append(teacher_id)
            continue
        if dry_run:
            db.rollback()
        else:
            db.commit()
        summary["converted"] += 1
        summary["windows"] += len(windows)
    return summary


def main() -> None:
    parser = argparse.ArgumentParser(description="Convert legacy day_schedules into availability windows.")
    parser.add_argument("--input", required=True, help="JSON export of legacy availability rows")
    parser.add_argument("--dry-run", action="store_true", help="validate and report without writing")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    with open(args.input, "r", encoding="utf-8") as f:
        records = json.load(f)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        summary = convert_records(db, records, dry_run=args.dry_run)
    finally:
        db.close()
    logger.info(
        "Converted %d teachers (%d windows), %d failed%s",
        summary["converted"],
        summary["windows"],
        len(summary["failed"]),
        " [dry run]" if args.dry_run else "",
    )


if __name__ == "__main__":
    main()
