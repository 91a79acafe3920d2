"""Pull attendance logs from every active pull-model device.

Meant to be run from cron, e.g. every 5 minutes:
    */5 * * * * cd /srv/academy-attendance && python scripts/sync_devices.py
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from pathlib import Path

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from dotenv import load_dotenv

from academy_attendance.common.datetime_utils import utc_now
from academy_attendance.common.logging_utils import configure_logging
from academy_attendance.config import get_settings_module
from academy_attendance.container import build_container
from academy_attendance.core.exceptions import DomainError, StorageError

logger = logging.getLogger("academy_attendance.sync_devices")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--device", type=int, help="sync only this device id")
    args = parser.parse_args(argv)

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"), getattr(settings, "LOG_FILE", None))

    container = build_container(db_config=dict(settings.DB_CONFIG), settings=settings)
    orchestrator = container.sync_orchestrator
    now = utc_now()

    try:
        if args.device is not None:
            results = [orchestrator.sync_device(args.device, now=now)]
        else:
            results = orchestrator.sync_all(now=now)
    except StorageError:
        logger.exception("Sync aborted: database unavailable")
        return 2
    except DomainError as e:
        logger.error("Sync refused: %s", e)
        return 1

    for r in results:
        print(
            f"device={r.device_id} success={r.success} fetched={r.fetched} applied={r.applied} "
            f"rejected={r.rejected} unresolved={r.unresolved} malformed={r.malformed} failed={r.failed}"
            + (f" error={r.error}" if r.error else "")
        )
    return 0 if all(r.success for r in results) else 1


if __name__ == "__main__":
    sys.exit(main())
