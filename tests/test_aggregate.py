import json

import pytest

from fogcheck.aggregate import build_reading, group_by_region, write_region_snapshots
from fogcheck.models import LandmarkDetail, VisibilityResult
from helpers import at


def make_result(location, region, score=100, timestamp="2024-01-01T12:00:00.000Z"):
    visible = 1 if score >= 50 else 0
    return VisibilityResult(
        location=location,
        region=region,
        landmarks_visible=visible,
        total_landmarks=1,
        visibility_score=score,
        fog_level="clear" if score >= 80 else "heavy",
        timestamp=timestamp,
        landmark_details=(
            LandmarkDetail(name=f"{location}-lm", visible=bool(visible), similarity=0.9),
        ),
    )


class TestGroupByRegion:
    def test_one_entry_per_region(self):
        collection = group_by_region(
            [make_result("cam-a", "golden-gate"), make_result("cam-b", "downtown")]
        )

        assert list(collection.by_region) == ["golden-gate", "downtown"]
        assert [s.region for s in collection.entries] == ["golden-gate", "downtown"]
        assert len(collection) == 2

    def test_later_location_wins_and_keeps_first_position(self):
        collection = group_by_region(
            [
                make_result("cam-a", "golden-gate", score=100),
                make_result("cam-b", "downtown", score=100),
                make_result("cam-c", "golden-gate", score=0),
            ]
        )

        assert list(collection.by_region) == ["golden-gate", "downtown"]
        status = collection["golden-gate"]
        assert status.visibility_score == 0
        assert status.landmarks[0].name == "cam-c-lm"

    def test_empty_run(self):
        collection = group_by_region([])

        assert len(collection) == 0
        assert collection.entries == []


class TestBuildReading:
    def test_uses_first_timestamp_and_last_write_per_region(self):
        reading = build_reading(
            [
                make_result("cam-a", "golden-gate", 100, "2024-01-01T12:00:00.000Z"),
                make_result("cam-b", "golden-gate", 0, "2024-01-01T12:00:05.000Z"),
            ]
        )

        assert reading.timestamp == "2024-01-01T12:00:00.000Z"
        assert list(reading.regions) == ["golden-gate"]
        assert reading.regions["golden-gate"].visibility_score == 0

    def test_empty_run_uses_now(self):
        reading = build_reading([], now=at("2024-05-06T07:08"))

        assert reading.timestamp == "2024-05-06T07:08:00.000Z"
        assert reading.regions == {}

    def test_record_field_names(self):
        record = build_reading([make_result("cam-a", "golden-gate")]).to_record()

        assert record == {
            "timestamp": "2024-01-01T12:00:00.000Z",
            "regions": {
                "golden-gate": {
                    "fogLevel": "clear",
                    "visibilityScore": 100,
                    "landmarksVisible": 1,
                    "totalLandmarks": 1,
                }
            },
        }


class TestWriteRegionSnapshots:
    def test_writes_region_files_and_index(self, tmp_path):
        regions_dir = tmp_path / "api" / "regions"
        collection = group_by_region(
            [make_result("cam-a", "golden-gate"), make_result("cam-b", "downtown", 0)]
        )

        written = write_region_snapshots(collection, regions_dir)

        assert [p.name for p in written] == ["golden-gate", "downtown", "index"]
        golden = json.loads((regions_dir / "golden-gate").read_text())
        assert golden == {
            "region": "golden-gate",
            "fogLevel": "clear",
            "visibilityScore": 100,
            "timestamp": "2024-01-01T12:00:00.000Z",
            "landmarks": [{"name": "cam-a-lm", "visible": True, "similarity": 0.9}],
        }
        index = json.loads((regions_dir / "index").read_text())
        assert [entry["region"] for entry in index] == ["golden-gate", "downtown"]
        assert index[0] == golden
        assert (regions_dir / "index").read_text().endswith("\n")

    @pytest.mark.parametrize("key", ["index", "bay/area", ".."])
    def test_unusable_region_key_rejected_before_writing(self, tmp_path, key):
        collection = group_by_region(
            [make_result("cam-a", "golden-gate"), make_result("cam-b", key)]
        )
        regions_dir = tmp_path / "regions"

        with pytest.raises(ValueError):
            write_region_snapshots(collection, regions_dir)
        assert not regions_dir.exists()
