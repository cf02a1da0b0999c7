"""Region grouping — turns per-location results into per-region collections."""

import logging
from collections import OrderedDict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from fogcheck.jsonfile import write_json
from fogcheck.locations import is_valid_region_key
from fogcheck.models import HistoricalReading, RegionReading, RegionStatus, VisibilityResult
from fogcheck.timestamps import isoformat_utc, utc_now

logger = logging.getLogger(__name__)

INDEX_NAME = "index"


@dataclass(frozen=True)
class RegionCollection:
    """Current status per region, in first-seen order."""

    by_region: "OrderedDict[str, RegionStatus]"

    @property
    def entries(self) -> list[RegionStatus]:
        return list(self.by_region.values())

    def __len__(self) -> int:
        return len(self.by_region)

    def __contains__(self, region: object) -> bool:
        return region in self.by_region

    def __getitem__(self, region: str) -> RegionStatus:
        return self.by_region[region]


def _merge_by_region(results: Iterable[VisibilityResult]) -> "OrderedDict[str, VisibilityResult]":
    # Later results overwrite earlier ones for the same region but keep its
    # first-seen position.
    merged: OrderedDict[str, VisibilityResult] = OrderedDict()
    for result in results:
        if result.region in merged:
            logger.debug(
                "Region %s: %s replaces %s",
                result.region,
                result.location,
                merged[result.region].location,
            )
        merged[result.region] = result
    return merged


def group_by_region(results: Iterable[VisibilityResult]) -> RegionCollection:
    """Collapse results to one status per region, last write wins.

    Two locations sharing a region key in the same run are not averaged: the
    later one in iteration order replaces the earlier one.
    """
    by_region: OrderedDict[str, RegionStatus] = OrderedDict()
    for region, result in _merge_by_region(results).items():
        by_region[region] = RegionStatus(
            region=region,
            fog_level=result.fog_level,
            visibility_score=result.visibility_score,
            timestamp=result.timestamp,
            landmarks=result.landmark_details,
        )
    return RegionCollection(by_region=by_region)


def build_reading(
    results: Sequence[VisibilityResult], now: datetime | None = None
) -> HistoricalReading:
    """Fold a run's results into one HistoricalReading.

    The reading takes the first result's timestamp, or ``now`` when the run
    produced nothing.
    """
    timestamp = results[0].timestamp if results else isoformat_utc(now or utc_now())
    regions = {
        region: RegionReading(
            fog_level=result.fog_level,
            visibility_score=result.visibility_score,
            landmarks_visible=result.landmarks_visible,
            total_landmarks=result.total_landmarks,
        )
        for region, result in _merge_by_region(results).items()
    }
    return HistoricalReading(timestamp=timestamp, regions=regions)


def write_region_snapshots(collection: RegionCollection, regions_dir: Path) -> list[Path]:
    """Write ``<regions_dir>/<region>`` for each region and the ``index`` collection.

    Returns:
        Paths written, per-region files first and the index last.
    """
    bad = [region for region in collection.by_region if not is_valid_region_key(region)]
    if bad:
        raise ValueError(f"region keys cannot be used as file names: {bad}")
    regions_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for region, status in collection.by_region.items():
        path = regions_dir / region
        write_json(path, status.to_record())
        logger.info("Wrote regions/%s", region)
        written.append(path)

    index_path = regions_dir / INDEX_NAME
    write_json(index_path, [status.to_record() for status in collection.entries])
    logger.info("Wrote regions/%s (%d regions)", INDEX_NAME, len(collection))
    written.append(index_path)
    return written
