from conftest import COMPONENTS_TABLE, GEOMETRIES_TABLE, HORIZONS_TABLE, MAP_UNITS_TABLE

from app.services.soil.parsers import (
    parse_components,
    parse_geometries,
    parse_horizons,
    parse_map_unit_acres,
    parse_map_units,
    to_float,
)


def test_missing_or_bad_table_gives_empty_results():
    for result in (None, {}, {"Table": None}, {"Table": "oops"}, [], "text"):
        assert parse_map_units(result) == []
        assert parse_components(result) == []
        assert parse_horizons(result) == {}
        assert parse_geometries(result).features == []


def test_parse_map_units_positional_rows():
    map_units = parse_map_units(MAP_UNITS_TABLE)
    assert [mu.mukey for mu in map_units] == ["123456", "123457"]
    assert map_units[0].musym == "DrA"
    assert map_units[0].mukind == "Consociation"
    assert map_units[1].farmlndcl == "Prime farmland if drained"
    assert map_units[0].muacres is None


def test_parse_map_units_named_rows():
    result = {"Table": [{
        "mukey": 123456, "musym": "DrA", "muname": "Drummer", "mukind": "Consociation", "farmlndcl": None,
    }]}
    (mu,) = parse_map_units(result)
    assert mu.mukey == "123456"
    assert mu.farmlndcl is None


def test_named_lookup_falls_back_to_position():
    result = {"Table": [{"0": "999", "musym": "Zz", "2": "Positional name"}]}
    (mu,) = parse_map_units(result)
    assert mu.mukey == "999"
    assert mu.muname == "Positional name"


def test_parse_components_numeric_fields():
    components = parse_components(COMPONENTS_TABLE)
    assert len(components) == 4
    drummer = components[0]
    assert drummer.cokey == "c1"
    assert drummer.mukey == "123456"
    assert drummer.comppct_r == 90.0
    assert drummer.slope_r == 1.0
    assert drummer.hydgrp == "B/D"
    assert drummer.nirrcapcl == "2"
    assert components[1].nirrcapscl is None


def test_unparseable_numbers_become_none():
    row = ["c9", "1", "Odd", "Series", "lots", "steep", None, None, None, None, None, None]
    (comp,) = parse_components({"Table": [row]})
    assert comp.comppct_r == 0.0
    assert comp.slope_r is None


def test_to_float():
    assert to_float("3.5") == 3.5
    assert to_float(7) == 7.0
    assert to_float("") is None
    assert to_float(None) is None
    assert to_float("NaN") is None
    assert to_float("abc") is None


def test_parse_horizons_groups_and_sorts_by_depth():
    horizons = parse_horizons(HORIZONS_TABLE)
    assert set(horizons) == {"c1", "c4"}
    assert [h.hzname for h in horizons["c1"]] == ["Ap", "A", "Bg"]
    assert [h.hzdept_r for h in horizons["c1"]] == [0.0, 18.0, 46.0]
    assert horizons["c1"][0].om_r == 5.0
    assert horizons["c4"][0].ph1to1h2o_r is None


def test_parse_map_unit_acres():
    acres = parse_map_unit_acres({"Table": [["1", "12.5"], ["2", None], [None, "3"]]})
    assert acres == {"1": 12.5}


def test_parse_geometries_drops_unparseable_rows():
    collection = parse_geometries(GEOMETRIES_TABLE)
    assert collection.type == "FeatureCollection"
    assert [f.properties.mukey for f in collection.features] == ["123456", "123457"]
    flanagan = collection.features[1]
    assert flanagan.geometry.coordinates[0][0] == [-88.21, 40.1]
    assert len(flanagan.geometry.coordinates) == 1
