"""Fog detection layer — landmark comparison, scoring, and per-location analysis."""

import io
import logging
import math
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from fogcheck.config import Settings
from fogcheck.fetcher import fetch_webcam_image
from fogcheck.locations import LocationConfigError, load_location_config
from fogcheck.models import (
    FogLevel,
    ImageSource,
    LandmarkDetail,
    LandmarkTemplate,
    LocationConfig,
    Region,
    VisibilityResult,
)
from fogcheck.timestamps import isoformat_utc, utc_now

logger = logging.getLogger(__name__)

# Fraction of the full intensity range two pixels may differ by and still match
PIXEL_TOLERANCE = 0.1

# Percentiles clipped away when stretching contrast
_NORMALIZE_LOW_PCT = 1.0
_NORMALIZE_HIGH_PCT = 99.0

Fetcher = Callable[..., bytes]


class LandmarkError(Exception):
    """A single landmark could not be compared."""


class RegionError(LandmarkError):
    """Landmark region is empty or falls outside the source image."""


class TemplateError(LandmarkError):
    """Template image is unreadable or does not match its region."""


class ImageDecodeError(LandmarkError):
    """Source image bytes are not a decodable raster image."""


def decode_image(image_bytes: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageDecodeError(f"Cannot decode source image: {e}") from e
    return img


def _to_luminance(img: Image.Image) -> np.ndarray:
    return np.asarray(img.convert("L"), dtype=np.float64)


def normalize(gray: np.ndarray) -> np.ndarray:
    """Stretch the 1st-99th percentile intensity range to 0-255.

    Reduces sensitivity to overall brightness shifts through the day. An image
    without any intensity spread (e.g. a solid fill) is returned unchanged.
    """
    lo, hi = np.percentile(gray, [_NORMALIZE_LOW_PCT, _NORMALIZE_HIGH_PCT])
    if hi <= lo:
        return gray
    return np.clip((gray - lo) * 255.0 / (hi - lo), 0.0, 255.0)


def count_mismatches(
    a: np.ndarray, b: np.ndarray, tolerance: float = PIXEL_TOLERANCE
) -> int:
    """Number of pixels whose intensities differ by more than ``tolerance`` of full range."""
    if a.shape != b.shape:
        raise ValueError(f"shape mismatch: {a.shape} vs {b.shape}")
    return int(np.count_nonzero(np.abs(a - b) > tolerance * 255.0))


def extract_region(img: Image.Image, region: Region) -> Image.Image:
    """Crop ``region`` out of ``img``.

    Raises:
        RegionError: On a zero-area region or one that leaves the image bounds.
    """
    if region.width <= 0 or region.height <= 0:
        raise RegionError(f"Region has zero area: {region}")
    width, height = img.size
    if (
        region.x < 0
        or region.y < 0
        or region.x + region.width > width
        or region.y + region.height > height
    ):
        raise RegionError(f"Region {region} outside image bounds {width}x{height}")
    return img.crop(
        (region.x, region.y, region.x + region.width, region.y + region.height)
    )


def resolve_template_path(template_path: str, root: Path | None) -> Path:
    path = Path(template_path)
    if path.is_absolute() or root is None:
        return path
    return root / path


def load_template(landmark: LandmarkTemplate, root: Path | None = None) -> np.ndarray:
    """Read the landmark's template as a luminance array.

    Raises:
        TemplateError: If the file is missing, undecodable, or sized differently
            from the landmark region.
    """
    path = resolve_template_path(landmark.template_path, root)
    try:
        with Image.open(path) as img:
            gray = _to_luminance(img)
    except (UnidentifiedImageError, OSError) as e:
        raise TemplateError(f"Cannot read template {path}: {e}") from e

    expected = (landmark.region.height, landmark.region.width)
    if gray.shape != expected:
        raise TemplateError(
            f"Template {path} is {gray.shape[1]}x{gray.shape[0]}, "
            f"region is {landmark.region.width}x{landmark.region.height}"
        )
    return gray


def check_landmark_visibility(
    image: bytes | Image.Image,
    landmark: LandmarkTemplate,
    *,
    root: Path | None = None,
    tolerance: float = PIXEL_TOLERANCE,
) -> LandmarkDetail:
    """Compare one landmark region of a live image against its clear-day template.

    Both sides are reduced to a single intensity channel and normalized
    independently before the per-pixel comparison.

    Args:
        image: Encoded source image bytes, or an already decoded image.
        landmark: Template, region, and threshold for the landmark.
        root: Base directory for relative template paths.
        tolerance: Per-pixel mismatch tolerance as a fraction of full range.

    Returns:
        LandmarkDetail. ``visible`` compares the unrounded similarity against
        the threshold; the reported ``similarity`` is rounded to 2 decimals.

    Raises:
        LandmarkError: On a bad region, unreadable template, or undecodable image.
    """
    if landmark.region.area <= 0:
        raise RegionError(f"{landmark.name}: region has zero area")
    img = decode_image(image) if isinstance(image, bytes) else image

    live = normalize(_to_luminance(extract_region(img, landmark.region)))
    template = normalize(load_template(landmark, root))

    mismatched = count_mismatches(live, template, tolerance)
    similarity = 1.0 - mismatched / landmark.region.area
    logger.debug(
        "%s: %d/%d pixels differ, similarity %.3f (threshold %.2f)",
        landmark.name,
        mismatched,
        landmark.region.area,
        similarity,
        landmark.threshold,
    )

    return LandmarkDetail(
        name=landmark.name,
        visible=similarity >= landmark.threshold,
        similarity=round(similarity, 2),
    )


def get_fog_level(score: int) -> FogLevel:
    """Map a visibility score (0-100) to a fog level.

    Bands include their lower edge: 80+ clear, 50+ light, 20+ moderate,
    below 20 heavy. Scores outside 0-100 are a caller error.
    """
    if score >= 80:
        return "clear"
    if score >= 50:
        return "light"
    if score >= 20:
        return "moderate"
    return "heavy"


def visibility_score(visible: int, total: int) -> int:
    """Percentage of visible landmarks, halves rounded up (1 of 8 -> 13)."""
    if total <= 0:
        raise ValueError("total landmarks must be positive")
    return math.floor(100 * visible / total + 0.5)


def analyze_location(
    config: LocationConfig,
    image: bytes,
    *,
    root: Path | None = None,
    now: datetime | None = None,
) -> VisibilityResult:
    """Check every landmark of a location against one source image.

    Any landmark failure propagates; no partial result is produced.

    Raises:
        LocationConfigError: If the location has no landmarks.
        LandmarkError: If any landmark comparison fails.
    """
    if not config.landmarks:
        raise LocationConfigError(f"{config.location}: no landmarks configured")

    img = decode_image(image)
    details = tuple(
        check_landmark_visibility(img, landmark, root=root)
        for landmark in config.landmarks
    )
    visible_count = sum(1 for d in details if d.visible)
    score = visibility_score(visible_count, len(details))

    return VisibilityResult(
        location=config.location,
        region=config.region,
        landmarks_visible=visible_count,
        total_landmarks=len(details),
        visibility_score=score,
        fog_level=get_fog_level(score),
        timestamp=isoformat_utc(now or utc_now()),
        landmark_details=details,
    )


def analyze_fog_level(
    location_name: str,
    settings: Settings,
    *,
    fetch: Fetcher = fetch_webcam_image,
    now: datetime | None = None,
) -> VisibilityResult:
    """Top-level entry point for one location: load config, fetch image, analyze.

    Args:
        location_name: Config file stem under ``settings.locations_dir``.
        settings: Paths and acquisition settings.
        fetch: Image acquisition callable, ``fetch(source, timeout=..., ffmpeg_path=...)``.
        now: Timestamp to stamp on the result (default: current UTC time).

    Returns:
        VisibilityResult for the location.
    """
    config = load_location_config(settings.locations_dir, location_name)
    image = _fetch(fetch, config.source, settings)
    return analyze_location(config, image, root=settings.root, now=now)


def _fetch(fetch: Fetcher, source: ImageSource, settings: Settings) -> bytes:
    return fetch(
        source, timeout=settings.fetch_timeout, ffmpeg_path=settings.ffmpeg_path
    )
