"""Image and reading builders shared by the tests."""

import io
from datetime import datetime

from PIL import Image
from pytz import utc

from fogcheck.models import HistoricalReading, Region, RegionReading

RED = (255, 0, 0)
BLUE = (0, 0, 255)
GREY = (100, 100, 100)


def solid_png(width: int, height: int, color: tuple[int, int, int]) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def image_with_region(
    width: int,
    height: int,
    region: Region,
    bg: tuple[int, int, int] = GREY,
    fg: tuple[int, int, int] = RED,
) -> bytes:
    """Solid background with a differently coloured rectangle at ``region``."""
    img = Image.new("RGB", (width, height), bg)
    img.paste(Image.new("RGB", (region.width, region.height), fg), (region.x, region.y))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def at(value: str) -> datetime:
    """Aware UTC datetime from ``YYYY-MM-DDTHH:MM``."""
    return utc.localize(datetime.strptime(value, "%Y-%m-%dT%H:%M"))


def reading(timestamp: str, region: str = "golden-gate", score: int = 100) -> HistoricalReading:
    return HistoricalReading(
        timestamp=timestamp,
        regions={
            region: RegionReading(
                fog_level="clear" if score >= 80 else "heavy",
                visibility_score=score,
                landmarks_visible=1 if score else 0,
                total_landmarks=1,
            )
        },
    )
