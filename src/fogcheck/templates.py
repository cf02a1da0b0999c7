"""One-time setup — cut landmark templates from a clear-day image and save the location config."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from fogcheck.config import Settings
from fogcheck.detector import Fetcher, decode_image, extract_region
from fogcheck.fetcher import fetch_webcam_image
from fogcheck.locations import LocationConfigError, is_valid_region_key, save_location_config
from fogcheck.models import ImageSource, LandmarkTemplate, LocationConfig, Region

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.7


@dataclass(frozen=True)
class TemplateSetup:
    """A landmark to cut from the setup image."""

    name: str
    x: int
    y: int
    width: int
    height: int
    threshold: float | None = None  # DEFAULT_THRESHOLD when omitted

    @property
    def region(self) -> Region:
        return Region(x=self.x, y=self.y, width=self.width, height=self.height)


def create_template_with_coordinates(
    source: ImageSource,
    location: str,
    landmarks: Sequence[TemplateSetup],
    settings: Settings,
    *,
    region: str | None = None,
    snapshot: Path | None = None,
    fetch: Fetcher = fetch_webcam_image,
) -> LocationConfig:
    """Cut a PNG template per landmark from a clear-day image and write the config.

    Templates land in ``templates/<location>/<name>.png`` and the config refers
    to them by paths relative to the project root so the tree stays portable.

    Args:
        source: Camera the templates are cut from.
        location: Location name; also the config file stem.
        landmarks: Landmark names and pixel rectangles.
        settings: Paths and acquisition settings.
        region: Region key for the location (default: the location name).
        snapshot: A previously captured clear-day frame. When given, the image
            is read from this file and ``source`` is only recorded in the config.
        fetch: Image acquisition callable, used when there is no snapshot.

    Returns:
        The LocationConfig that was written.

    Raises:
        LocationConfigError: If the location or region name cannot be used as
            a file name.
    """
    region = region or location
    for key in (location, region):
        if not is_valid_region_key(key):
            raise LocationConfigError(f"invalid location or region name {key!r}")

    if snapshot is not None:
        logger.info("Setting up templates for %s from %s...", location, snapshot)
        image_bytes = snapshot.read_bytes()
    else:
        logger.info("Setting up templates for %s...", location)
        image_bytes = fetch(
            source, timeout=settings.fetch_timeout, ffmpeg_path=settings.ffmpeg_path
        )
    img = decode_image(image_bytes)

    location_dir = settings.templates_dir / location
    location_dir.mkdir(parents=True, exist_ok=True)

    templates: list[LandmarkTemplate] = []
    for lm in landmarks:
        path = location_dir / f"{lm.name}.png"
        extract_region(img, lm.region).save(path, format="PNG")
        templates.append(
            LandmarkTemplate(
                name=lm.name,
                template_path=path.relative_to(settings.root).as_posix(),
                region=lm.region,
                threshold=DEFAULT_THRESHOLD if lm.threshold is None else lm.threshold,
            )
        )
        logger.info(
            "Created template for %s (%dx%d at %d,%d)",
            lm.name, lm.width, lm.height, lm.x, lm.y,
        )  # fmt: skip

    config = LocationConfig(
        location=location,
        region=region,
        source=source,
        landmarks=tuple(templates),
    )
    path = save_location_config(settings.locations_dir, config)
    logger.info("Saved config to %s", path)
    return config
