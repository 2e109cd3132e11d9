from datetime import datetime, timezone

import pytest

from space_api import keys


def test_static_keys_match_status_catalogue():
    from space_api.status import DATA_SOURCES

    assert set(DATA_SOURCES) == {
        keys.SOLAR_FLARES, keys.SEP, keys.CMES, keys.NEOS, keys.LAUNCHES,
        keys.EVENTS, keys.LAUNCH_VEHICLES, keys.SUN_DATA_SOURCES,
    }


def test_coordinates_rounded_to_fixed_precision():
    a = keys.SatellitesAboveKey(40.692889, -73.981722)
    b = keys.SatellitesAboveKey(40.69291, -73.98170)
    assert str(a) == "satellites_above:40.6929:-73.9817:0.0000:7"
    assert str(a) == str(b)


def test_integer_and_float_coordinates_agree():
    assert str(keys.SatellitesAboveKey(40, -74, 0, 7)) == \
        str(keys.SatellitesAboveKey(40.0, -74.0, 0.0, 7))


def test_negative_zero_is_normalised():
    assert str(keys.SatellitePositionsKey(25544, -0.00001, 0.0)) == \
        "satellite_positions:25544:0.0000:0.0000"


def test_distinct_parameters_never_collide():
    generated = {
        str(keys.DonkiKey("solarflares", "2024-01-01", "2024-01-07")),
        str(keys.DonkiKey("solarflares", "2024-01-01", None)),
        str(keys.DonkiKey("cmes", "2024-01-01", "2024-01-07")),
        str(keys.EarthImageryKey("latest", "natural")),
        str(keys.EarthImageryKey("latest", "enhanced")),
        str(keys.SunMetadataKey("latest", "171")),
        str(keys.SunMetadataKey("2024-01-01", "171")),
        str(keys.LauncherConfigurationsKey("falcon")),
        str(keys.LauncherConfigurationsKey(None)),
    }
    assert len(generated) == 9


def test_none_renders_as_default():
    assert str(keys.DonkiKey("sep")) == "donki:sep:default:default"


def test_case_insensitive_parts_are_lowered():
    assert keys.EarthImageryKey("latest", "Natural") == keys.EarthImageryKey("latest", "natural")
    assert str(keys.SunMetadataKey("latest", "MAGNETOGRAM")) == "sun_metadata:latest:magnetogram"


def test_moon_key_uses_quarter_hour_slot():
    early = datetime(2025, 3, 1, 10, 15, 2, tzinfo=timezone.utc)
    late = datetime(2025, 3, 1, 10, 29, 59, tzinfo=timezone.utc)
    next_slot = datetime(2025, 3, 1, 10, 30, tzinfo=timezone.utc)

    assert keys.quarter_hour(early) == keys.quarter_hour(late)
    assert keys.quarter_hour(next_slot) == next_slot
    assert str(keys.MoonKey(40.7, -74.0, keys.quarter_hour(late))) == \
        "moon:40.7000:-74.0000:2025-03-01T10:15"


def test_keys_are_hashable_and_frozen():
    key = keys.DonkiKey("cmes", "2024-01-01", "2024-01-02")
    assert {key: 1}[keys.DonkiKey("cmes", "2024-01-01", "2024-01-02")] == 1
    with pytest.raises(Exception):
        key.event = "sep"
