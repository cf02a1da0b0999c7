import json

import pytest

from fogcheck.locations import (
    LocationConfigError,
    list_locations,
    load_location_config,
    parse_location_config,
    save_location_config,
)


def config_record(**overrides):
    record = {
        "location": "berkeley",
        "region": "bay",
        "source": {"type": "hls", "url": "https://example.com/master.m3u8"},
        "landmarks": [
            {
                "name": "sf-skyline",
                "templatePath": "./templates/berkeley/sf-skyline.png",
                "region": {"x": 300, "y": 200, "width": 150, "height": 100},
                "threshold": 0.7,
            }
        ],
    }
    record.update(overrides)
    return record


def test_parse_valid_record():
    config = parse_location_config(config_record())

    assert config.location == "berkeley"
    assert config.region == "bay"
    assert config.source.type == "hls"
    assert config.landmarks[0].region.width == 150
    assert config.landmarks[0].threshold == 0.7


def test_region_defaults_to_location():
    record = config_record()
    del record["region"]

    assert parse_location_config(record).region == "berkeley"


def test_round_trips_through_disk(tmp_path):
    config = parse_location_config(config_record())

    save_location_config(tmp_path, config)

    assert load_location_config(tmp_path, "berkeley") == config


@pytest.mark.parametrize(
    "overrides",
    [
        {"location": ""},
        {"source": {"type": "rtsp", "url": "rtsp://cam"}},
        {"source": "https://example.com/cam.jpg"},
        {"landmarks": {}},
        {"landmarks": [{"name": "x", "templatePath": "t.png", "threshold": 0.5}]},
        {
            "landmarks": [
                {
                    "name": "x",
                    "templatePath": "t.png",
                    "region": {"x": 0, "y": 0, "width": 10, "height": 10},
                    "threshold": 1.5,
                }
            ]
        },
        {
            "landmarks": [
                {
                    "name": "x",
                    "templatePath": "t.png",
                    "region": {"x": -1, "y": 0, "width": 10, "height": 10},
                    "threshold": 0.5,
                }
            ]
        },
    ],
)
def test_malformed_records_rejected(overrides):
    with pytest.raises(LocationConfigError):
        parse_location_config(config_record(**overrides))


def test_unreadable_file_is_config_error(tmp_path):
    (tmp_path / "broken.json").write_text("{")

    with pytest.raises(LocationConfigError):
        load_location_config(tmp_path, "broken")
    with pytest.raises(LocationConfigError):
        load_location_config(tmp_path, "missing")


def test_list_locations(tmp_path):
    for name in ("salesforce-east", "berkeley"):
        (tmp_path / f"{name}.json").write_text(json.dumps(config_record(location=name)))
    (tmp_path / ".gitkeep").write_text("")

    assert list_locations(tmp_path) == ["berkeley", "salesforce-east"]
    assert list_locations(tmp_path / "absent") == []


@pytest.mark.parametrize("key", ["", "index", "recent", ".", "..", "bay/area", "bay\\area", 7])
def test_region_key_must_be_usable_as_file_name(key):
    with pytest.raises(LocationConfigError):
        parse_location_config(config_record(region=key))


def test_location_name_is_checked_when_it_stands_in_for_region():
    record = config_record(location="../berkeley")
    del record["region"]

    with pytest.raises(LocationConfigError):
        parse_location_config(record)
