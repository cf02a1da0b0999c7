"""Batch runs — check every configured location, publish regions, update history."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from fogcheck.aggregate import (
    RegionCollection,
    build_reading,
    group_by_region,
    write_region_snapshots,
)
from fogcheck.config import Settings
from fogcheck.detector import Fetcher, analyze_fog_level
from fogcheck.fetcher import fetch_webcam_image
from fogcheck.history import ExpiryReport, HistoricalStore
from fogcheck.locations import list_locations
from fogcheck.models import VisibilityResult
from fogcheck.timestamps import utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckReport:
    """What one check run produced."""

    results: tuple[VisibilityResult, ...] = ()
    failed: tuple[str, ...] = ()  # Location names excluded after an error
    collection: RegionCollection | None = None
    history_date: str | None = None  # Bucket the reading went into

    @property
    def checked(self) -> int:
        return len(self.results) + len(self.failed)


def run_check(
    settings: Settings,
    *,
    fetch: Fetcher = fetch_webcam_image,
    clock: Callable[[], datetime] = utc_now,
) -> CheckReport:
    """Check fog at every configured location and write the API files.

    A failing location is logged and left out of the run; the others still
    complete. When no location succeeds, region snapshots and history are left
    untouched.
    """
    locations = list_locations(settings.locations_dir)
    if not locations:
        logger.info("No locations configured yet. Run the setup command first.")
        return CheckReport()

    logger.info("Checking fog at %d location(s)...", len(locations))
    results: list[VisibilityResult] = []
    failed: list[str] = []
    for name in locations:
        logger.info("Checking %s...", name)
        try:
            result = analyze_fog_level(name, settings, fetch=fetch, now=clock())
        except Exception:
            logger.exception("Failed to check %s", name)
            failed.append(name)
            continue
        results.append(result)
        logger.info(
            "%s: %s (%d/%d landmarks visible)",
            name,
            result.fog_level,
            result.landmarks_visible,
            result.total_landmarks,
        )

    if not results:
        logger.warning("No location could be checked; API files left unchanged")
        return CheckReport(failed=tuple(failed))

    collection = group_by_region(results)
    write_region_snapshots(collection, settings.regions_dir)

    store = HistoricalStore(settings.history_dir, clock=clock)
    bucket = store.update(build_reading(results, now=clock()))

    logger.info("API endpoints updated successfully")
    return CheckReport(
        results=tuple(results),
        failed=tuple(failed),
        collection=collection,
        history_date=bucket.date_key,
    )


def run_cleanup(
    settings: Settings, *, clock: Callable[[], datetime] = utc_now
) -> ExpiryReport:
    """Apply the 2-year retention horizon to the history archive."""
    logger.info("Starting history cleanup...")
    return HistoricalStore(settings.history_dir, clock=clock).expire()
