#!/usr/bin/env python3
"""
Create a timestamped backup of the events file and prune old backups.

Usage:
  python scripts/backup_events.py [--data-file data/events.json] [--backup-dir backups] [--keep 5]
  python scripts/backup_events.py --list
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Make the eventease package importable when run from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from eventease.core.config import get_settings  # noqa: E402
from eventease.core.logging_config import setup_logging  # noqa: E402
from eventease.domain.errors import EventStoreError  # noqa: E402
from eventease.repositories.json_storage import JsonEventStorage  # noqa: E402
from eventease.services.backup_service import BackupService  # noqa: E402

logger = logging.getLogger("eventease.backup")


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    ap = argparse.ArgumentParser(description="Backup the EventEase events file")
    ap.add_argument("--data-file", default=str(settings.data_file), help="Events JSON file")
    ap.add_argument("--backup-dir", default=str(settings.backup_dir), help="Directory holding backups")
    ap.add_argument("--keep", type=int, default=settings.backup_retention, help="Number of backups to keep")
    ap.add_argument("--list", action="store_true", help="List existing backups (newest first) and exit")
    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.keep < 1:
        raise SystemExit("--keep must be >= 1")
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)

    service = BackupService(JsonEventStorage(args.data_file), args.backup_dir, retention=args.keep)
    if args.list:
        for info in service.list_backups():
            print(f"{info.backup_id}  {info.size} bytes")
        return 0

    try:
        result = service.create_backup()
    except EventStoreError as exc:
        logger.error("Backup failed: %s", exc.message)
        sys.stderr.write(f"Backup failed: {exc.message}\n")
        return 1
    print("Backup created successfully!")
    print(f"  Backup file: {result.path}")
    print(f"  Events backed up: {result.event_count}")
    for backup_id in result.pruned:
        print(f"  Deleted old backup: {backup_id}")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except SystemExit:
        raise
    except Exception as exc:  # pragma: no cover - CLI usage
        logger.error("Backup failed: %s", exc)
        sys.stderr.write(f"Backup failed: {exc}\n")
        raise SystemExit(1)
