from pathlib import Path

import pytest

from fogcheck.config import Settings
from fogcheck.models import ImageSource, LandmarkTemplate, LocationConfig, Region
from helpers import RED, solid_png


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings.for_root(tmp_path)


@pytest.fixture
def region() -> Region:
    return Region(x=50, y=50, width=100, height=100)


@pytest.fixture
def red_template(tmp_path: Path, region: Region) -> Path:
    path = tmp_path / "template.png"
    path.write_bytes(solid_png(region.width, region.height, RED))
    return path


@pytest.fixture
def landmark(red_template: Path, region: Region) -> LandmarkTemplate:
    return LandmarkTemplate(
        name="test-landmark",
        template_path=str(red_template),
        region=region,
        threshold=0.7,
    )


@pytest.fixture
def location_config(landmark: LandmarkTemplate) -> LocationConfig:
    return LocationConfig(
        location="test-location",
        region="golden-gate",
        source=ImageSource(type="image", url="https://example.com/cam.jpg"),
        landmarks=(landmark,),
    )
