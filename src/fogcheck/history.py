"""Historical archive — daily buckets of hourly readings with derived rollups.

Layout of ``history_dir``::

    YYYY-MM-DD  {"hours": [24 x (null | reading)]}
    recent      {"readings": [...]}  readings from the trailing 7 days
    index       {"startDate", "endDate", "totalDays", "lastUpdated"}

Buckets are the durable record. ``recent`` and ``index`` are regenerated from
the full bucket set on every change, never patched in place. Both windows are
measured from the clock at the moment an operation runs.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

from pytz import utc

from fogcheck.jsonfile import read_json, write_json
from fogcheck.models import DailyBucket, HistoricalReading, RangeMetadata, RecentRollup
from fogcheck.timestamps import date_key, isoformat_utc, parse_date_key, parse_utc, utc_now

logger = logging.getLogger(__name__)

RECENT_NAME = "recent"
RANGE_NAME = "index"

RECENT_WINDOW = timedelta(days=7)
RETENTION = timedelta(days=2 * 365)

_DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class ExpiryReport:
    """Outcome of one retention sweep."""

    cutoff_date: str
    deleted: tuple[str, ...]
    kept: int
    range: RangeMetadata | None


def is_date_key(name: str) -> bool:
    if not _DATE_KEY_RE.match(name):
        return False
    try:
        parse_date_key(name)
    except ValueError:
        return False
    return True


class HistoricalStore:
    """Date-keyed bucket store rooted at ``history_dir``.

    Operations within a run must be sequenced: ``append`` first, then
    ``recompute_recent``, then ``recompute_range`` (``update`` does all three).
    Overlapping runs are not locked against each other.
    """

    def __init__(self, history_dir: Path, clock: Callable[[], datetime] = utc_now):
        self.history_dir = history_dir
        self._clock = clock

    def _path(self, key: str) -> Path:
        return self.history_dir / key

    def bucket_keys(self) -> list[str]:
        """Date keys of all buckets, oldest first.

        Zero-padded keys sort lexically in chronological order.
        """
        if not self.history_dir.is_dir():
            return []
        return sorted(
            p.name for p in self.history_dir.iterdir() if p.is_file() and is_date_key(p.name)
        )

    def load_bucket(self, key: str) -> DailyBucket | None:
        """Read one bucket. Missing or corrupt buckets yield None."""
        path = self._path(key)
        try:
            record = read_json(path)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning("Skipping unreadable bucket %s: %s", key, e)
            return None
        try:
            return DailyBucket.from_record(key, record)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping corrupt bucket %s: %s", key, e)
            return None

    def append(self, reading: HistoricalReading) -> DailyBucket:
        """Store ``reading`` in the slot for its UTC date and hour.

        An existing reading in the same hour is replaced. Write failures
        propagate.
        """
        ts = parse_utc(reading.timestamp)
        key, hour = date_key(ts), ts.hour

        self.history_dir.mkdir(parents=True, exist_ok=True)
        bucket = self.load_bucket(key) or DailyBucket(date_key=key)
        if bucket.hours[hour] is not None:
            logger.debug("Replacing reading for %s hour %02d", key, hour)
        bucket = bucket.with_reading(hour, reading)
        write_json(self._path(key), bucket.to_record())
        logger.info("Wrote history/%s (hour %02d)", key, hour)
        return bucket

    def recompute_recent(self) -> RecentRollup | None:
        """Rebuild ``recent`` from buckets dated within the trailing 7 days.

        Returns:
            The new rollup, or None if it could not be written (the previous
            file is left as it was).
        """
        cutoff = self._clock() - RECENT_WINDOW
        try:
            stamped: list[tuple[datetime, HistoricalReading]] = []
            for key in self.bucket_keys():
                if parse_date_key(key) < cutoff:
                    continue
                bucket = self.load_bucket(key)
                if bucket is None:
                    continue
                try:
                    rows = [(parse_utc(r.timestamp), r) for r in bucket.readings]
                except ValueError as e:
                    logger.warning("Skipping bucket %s with bad timestamp: %s", key, e)
                    continue
                stamped.extend(rows)

            stamped.sort(key=lambda row: row[0])
            rollup = RecentRollup(readings=tuple(r for _, r in stamped))
            self.history_dir.mkdir(parents=True, exist_ok=True)
            write_json(self._path(RECENT_NAME), rollup.to_record())
        except OSError:
            logger.exception("Failed to generate recent rollup")
            return None

        logger.info("Wrote history/%s (%d readings)", RECENT_NAME, len(rollup.readings))
        return rollup

    def recompute_range(self) -> RangeMetadata | None:
        """Rebuild ``index`` from the bucket set.

        Returns:
            The new metadata, or None when the archive is empty or the write
            failed.
        """
        try:
            keys = self.bucket_keys()
            if not keys:
                logger.info("No historical data files found")
                return None
            meta = RangeMetadata(
                start_date=keys[0],
                end_date=keys[-1],
                total_days=len(keys),
                last_updated=isoformat_utc(self._clock()),
            )
            write_json(self._path(RANGE_NAME), meta.to_record())
        except OSError:
            logger.exception("Failed to update historical range")
            return None

        logger.info("Wrote history/%s (%s to %s)", RANGE_NAME, meta.start_date, meta.end_date)
        return meta

    def expire(self, cutoff: datetime | None = None) -> ExpiryReport:
        """Delete buckets dated strictly before ``cutoff`` (default: now minus 2 years).

        Files that are not date keys are left alone. The range is recomputed
        whenever any bucket was deleted or remains. A missing history
        directory means there is nothing to clean.
        """
        if cutoff is None:
            cutoff = self._clock() - RETENTION
        elif cutoff.tzinfo is None:
            cutoff = utc.localize(cutoff)
        cutoff_date = date_key(cutoff)
        logger.info("Cutoff date: %s", cutoff_date)

        if not self.history_dir.is_dir():
            logger.info("History directory does not exist yet. Nothing to clean up.")
            return ExpiryReport(cutoff_date=cutoff_date, deleted=(), kept=0, range=None)

        deleted: list[str] = []
        kept = 0
        for path in sorted(self.history_dir.iterdir()):
            if not (path.is_file() and is_date_key(path.name)):
                logger.debug("Skipping non-date file: %s", path.name)
                continue
            if parse_date_key(path.name) < cutoff:
                path.unlink()
                logger.info("Deleted: %s", path.name)
                deleted.append(path.name)
            else:
                kept += 1

        logger.info("Cleanup complete: deleted %d, kept %d", len(deleted), kept)
        meta = self.recompute_range() if deleted or kept else None
        return ExpiryReport(
            cutoff_date=cutoff_date, deleted=tuple(deleted), kept=kept, range=meta
        )

    def update(self, reading: HistoricalReading) -> DailyBucket:
        """Append a reading and refresh both derived artifacts, in order."""
        bucket = self.append(reading)
        self.recompute_recent()
        self.recompute_range()
        return bucket
