"""Location config loading — one JSON record per camera location."""

import json
from pathlib import Path
from typing import Any

from fogcheck.jsonfile import write_json
from fogcheck.models import ImageSource, LandmarkTemplate, LocationConfig, Region


class LocationConfigError(Exception):
    """Location config is missing or malformed."""


# Names the region and history directories already use for their own files
RESERVED_REGION_KEYS = frozenset({"index", "recent"})


def is_valid_region_key(key: str) -> bool:
    """A region key is used verbatim as a file name under the regions directory."""
    return (
        bool(key)
        and key not in RESERVED_REGION_KEYS
        and key not in (".", "..")
        and "/" not in key
        and "\\" not in key
    )


def list_locations(locations_dir: Path) -> list[str]:
    """Names of all configured locations, sorted. Empty if the directory is missing."""
    if not locations_dir.is_dir():
        return []
    return sorted(p.stem for p in locations_dir.glob("*.json") if p.is_file())


def load_location_config(locations_dir: Path, name: str) -> LocationConfig:
    """Read ``<locations_dir>/<name>.json``.

    Raises:
        LocationConfigError: If the file is unreadable or fails validation.
    """
    path = locations_dir / f"{name}.json"
    try:
        record = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise LocationConfigError(f"Cannot read config {path}: {e}") from e
    return parse_location_config(record)


def save_location_config(locations_dir: Path, config: LocationConfig) -> Path:
    locations_dir.mkdir(parents=True, exist_ok=True)
    path = locations_dir / f"{config.location}.json"
    write_json(path, config.to_record())
    return path


def parse_location_config(record: Any) -> LocationConfig:
    """Validate a decoded config record and build a LocationConfig.

    ``region`` falls back to the location name for configs written before
    regions existed.
    """
    if not isinstance(record, dict):
        raise LocationConfigError("config record must be an object")
    location = _require_str(record, "location")
    region = record.get("region", location)
    if not isinstance(region, str) or not is_valid_region_key(region):
        raise LocationConfigError(f"{location}: invalid region key {region!r}")

    source_record = record.get("source")
    if not isinstance(source_record, dict):
        raise LocationConfigError(f"{location}: source must be an object")
    source_type = source_record.get("type")
    if source_type not in ("image", "hls"):
        raise LocationConfigError(f"{location}: unsupported source type {source_type!r}")
    source = ImageSource(type=source_type, url=_require_str(source_record, "url"))

    landmarks_record = record.get("landmarks")
    if not isinstance(landmarks_record, list):
        raise LocationConfigError(f"{location}: landmarks must be a list")
    landmarks = tuple(_parse_landmark(location, lm) for lm in landmarks_record)

    return LocationConfig(
        location=location, region=region, source=source, landmarks=landmarks
    )


def _parse_landmark(location: str, record: Any) -> LandmarkTemplate:
    if not isinstance(record, dict):
        raise LocationConfigError(f"{location}: landmark entries must be objects")
    name = _require_str(record, "name")
    region_record = record.get("region")
    if not isinstance(region_record, dict):
        raise LocationConfigError(f"{location}/{name}: region must be an object")
    try:
        region = Region(
            x=int(region_record["x"]),
            y=int(region_record["y"]),
            width=int(region_record["width"]),
            height=int(region_record["height"]),
        )
        threshold = float(record["threshold"])
    except (KeyError, TypeError, ValueError) as e:
        raise LocationConfigError(f"{location}/{name}: invalid landmark: {e}") from e

    if region.x < 0 or region.y < 0:
        raise LocationConfigError(f"{location}/{name}: negative region offset")
    if not 0.0 <= threshold <= 1.0:
        raise LocationConfigError(
            f"{location}/{name}: threshold {threshold} outside [0, 1]"
        )
    return LandmarkTemplate(
        name=name,
        template_path=_require_str(record, "templatePath"),
        region=region,
        threshold=threshold,
    )


def _require_str(record: dict, key: str) -> str:
    value = record.get(key)
    if not isinstance(value, str) or not value:
        raise LocationConfigError(f"missing or empty field {key!r}")
    return value
