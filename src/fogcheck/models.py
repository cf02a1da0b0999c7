"""Data model definitions — explicit boundaries between config, detection, and storage layers."""

from dataclasses import dataclass, field
from typing import Any, Literal

FogLevel = Literal["clear", "light", "moderate", "heavy"]
SourceType = Literal["image", "hls"]

HOURS_PER_DAY = 24


@dataclass(frozen=True)
class Region:
    """Rectangle in source-image pixel coordinates."""

    x: int
    y: int
    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height

    def to_record(self) -> dict[str, int]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class ImageSource:
    """Where a location's live image comes from."""

    type: SourceType  # "image" for a still URL, "hls" for a video stream
    url: str

    def to_record(self) -> dict[str, str]:
        return {"type": self.type, "url": self.url}


@dataclass(frozen=True)
class LandmarkTemplate:
    """A clear-day reference crop and the pixels it was cut from."""

    name: str
    template_path: str  # Relative paths resolve against the project root
    region: Region
    threshold: float  # Minimum similarity (0.0-1.0) to count as visible

    def to_record(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "templatePath": self.template_path,
            "region": self.region.to_record(),
            "threshold": self.threshold,
        }


@dataclass(frozen=True)
class LocationConfig:
    """One camera location. Written by setup, read-only during checks."""

    location: str
    region: str  # Geographic region key shared by one or more locations
    source: ImageSource
    landmarks: tuple[LandmarkTemplate, ...]

    def to_record(self) -> dict[str, Any]:
        return {
            "location": self.location,
            "region": self.region,
            "source": self.source.to_record(),
            "landmarks": [lm.to_record() for lm in self.landmarks],
        }


@dataclass(frozen=True)
class LandmarkDetail:
    """Outcome of comparing one landmark."""

    name: str
    visible: bool
    similarity: float  # Rounded to 2 decimals

    def to_record(self) -> dict[str, Any]:
        return {"name": self.name, "visible": self.visible, "similarity": self.similarity}


@dataclass(frozen=True)
class VisibilityResult:
    """One location's outcome for one run."""

    location: str
    region: str
    landmarks_visible: int
    total_landmarks: int
    visibility_score: int  # 0-100
    fog_level: FogLevel
    timestamp: str  # ISO-8601 UTC
    landmark_details: tuple[LandmarkDetail, ...]


@dataclass(frozen=True)
class RegionReading:
    """A region's figures inside a HistoricalReading."""

    fog_level: FogLevel
    visibility_score: int
    landmarks_visible: int
    total_landmarks: int

    def to_record(self) -> dict[str, Any]:
        return {
            "fogLevel": self.fog_level,
            "visibilityScore": self.visibility_score,
            "landmarksVisible": self.landmarks_visible,
            "totalLandmarks": self.total_landmarks,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "RegionReading":
        if not isinstance(record, dict):
            raise TypeError(f"region reading must be an object, got {type(record).__name__}")
        return cls(
            fog_level=record["fogLevel"],
            visibility_score=int(record["visibilityScore"]),
            landmarks_visible=int(record["landmarksVisible"]),
            total_landmarks=int(record["totalLandmarks"]),
        )


@dataclass(frozen=True)
class HistoricalReading:
    """All regions observed at one point in time."""

    timestamp: str
    regions: dict[str, RegionReading] = field(default_factory=dict)

    def to_record(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "regions": {key: r.to_record() for key, r in self.regions.items()},
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "HistoricalReading":
        timestamp = record["timestamp"]
        if not isinstance(timestamp, str):
            raise TypeError(f"timestamp must be a string, got {type(timestamp).__name__}")
        regions = record["regions"]
        if not isinstance(regions, dict):
            raise TypeError(f"regions must be an object, got {type(regions).__name__}")
        return cls(
            timestamp=timestamp,
            regions={
                key: RegionReading.from_record(value) for key, value in regions.items()
            },
        )


@dataclass(frozen=True)
class DailyBucket:
    """One UTC calendar day of readings. Slot index is the UTC hour."""

    date_key: str  # "YYYY-MM-DD"
    hours: tuple[HistoricalReading | None, ...] = (None,) * HOURS_PER_DAY

    def __post_init__(self) -> None:
        if len(self.hours) != HOURS_PER_DAY:
            raise ValueError(
                f"bucket {self.date_key} must have {HOURS_PER_DAY} slots, got {len(self.hours)}"
            )

    def with_reading(self, hour: int, reading: HistoricalReading) -> "DailyBucket":
        """Return a copy with ``reading`` in slot ``hour``, replacing any previous one."""
        if not 0 <= hour < HOURS_PER_DAY:
            raise ValueError(f"hour out of range: {hour}")
        hours = list(self.hours)
        hours[hour] = reading
        return DailyBucket(date_key=self.date_key, hours=tuple(hours))

    @property
    def readings(self) -> tuple[HistoricalReading, ...]:
        return tuple(r for r in self.hours if r is not None)

    @property
    def missing_hours(self) -> tuple[int, ...]:
        return tuple(i for i, r in enumerate(self.hours) if r is None)

    def to_record(self) -> dict[str, Any]:
        return {"hours": [r.to_record() if r is not None else None for r in self.hours]}

    @classmethod
    def from_record(cls, date_key: str, record: dict[str, Any]) -> "DailyBucket":
        hours = record["hours"]
        if not isinstance(hours, list):
            raise TypeError("hours must be a list")
        return cls(
            date_key=date_key,
            hours=tuple(
                HistoricalReading.from_record(r) if r is not None else None for r in hours
            ),
        )


@dataclass(frozen=True)
class RangeMetadata:
    """Span of the archive. Derived from the bucket set, never hand-edited."""

    start_date: str
    end_date: str
    total_days: int
    last_updated: str

    def to_record(self) -> dict[str, Any]:
        return {
            "startDate": self.start_date,
            "endDate": self.end_date,
            "totalDays": self.total_days,
            "lastUpdated": self.last_updated,
        }


@dataclass(frozen=True)
class RecentRollup:
    """Readings from the trailing 7 days, ascending by timestamp."""

    readings: tuple[HistoricalReading, ...]

    def to_record(self) -> dict[str, Any]:
        return {"readings": [r.to_record() for r in self.readings]}


@dataclass(frozen=True)
class RegionStatus:
    """Current-status record published for one region."""

    region: str
    fog_level: FogLevel
    visibility_score: int
    timestamp: str
    landmarks: tuple[LandmarkDetail, ...]

    def to_record(self) -> dict[str, Any]:
        return {
            "region": self.region,
            "fogLevel": self.fog_level,
            "visibilityScore": self.visibility_score,
            "timestamp": self.timestamp,
            "landmarks": [lm.to_record() for lm in self.landmarks],
        }
