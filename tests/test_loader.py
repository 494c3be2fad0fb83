"""Tests for MapLoader: parsing Tiled files and publishing LoadedMap snapshots."""

import contextlib
import io
import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from towerdef.errors import ConfigurationError, MalformedAssetError, PathExplosionError
from towerdef.loader import LoadedMap, MapLoader, parse_map_file
from towerdef.tilemap import Coord, DirectionMask, LoadedMapState

MAPS_DIR = Path(__file__).resolve().parent.parent / "examples" / "maps"

TWO_ROUTES = {
    ((0, 0), (1, 0), (2, 0)),
    ((0, 0), (0, 1), (0, 2), (1, 2), (2, 2), (2, 1), (2, 0)),
}

ROAD_ALL = {"road": True, "up": True, "right": True, "down": True, "left": True}


def tiled_map(width, height, layers, tiles, firstgid=1):
    """Build a minimal Tiled JSON map with bool properties."""
    return {
        "width": width,
        "height": height,
        "tilewidth": 32,
        "tileheight": 32,
        "layers": [
            {"type": "tilelayer", "name": f"layer {i}", "data": data}
            for i, data in enumerate(layers)
        ],
        "tilesets": [
            {
                "firstgid": firstgid,
                "tiles": [
                    {
                        "id": tile_id,
                        "properties": [
                            {"name": key, "type": "bool", "value": value}
                            for key, value in props.items()
                        ],
                    }
                    for tile_id, props in tiles.items()
                ],
            }
        ],
    }


def write_map(directory: Path, name: str, document) -> Path:
    path = directory / f"{name}.json"
    path.write_text(json.dumps(document))
    return path


@pytest.fixture
def loader() -> MapLoader:
    return MapLoader(MAPS_DIR, max_paths=100, max_depth=100)


def test_load_json_map(loader):
    loaded = loader.load("two_routes")

    assert isinstance(loaded, LoadedMap)
    assert loaded.name == "two_routes"
    assert (loaded.width, loaded.height) == (3, 3)
    assert loaded.pixel_size == (192, 192)
    assert loaded.start == Coord(0, 0)
    assert loaded.end == Coord(2, 0)
    assert loaded.paths.as_set() == TWO_ROUTES

    # Road layer sits above a full grass layer; roads win
    assert loaded.grid.mask_at((0, 2)) == DirectionMask.RIGHT | DirectionMask.DOWN
    assert loaded.grid.mask_at((1, 1)) == DirectionMask.NONE
    assert loaded.construction_points() == [Coord(1, 1)]
    assert len(loaded.placements) == 18


def test_tmx_and_json_versions_agree(loader):
    from_json = loader.load("two_routes")
    from_tmx = loader.load("two_routes_tmx")

    assert from_tmx.source.suffix == ".tmx"
    assert from_tmx.grid == from_json.grid
    assert from_tmx.start == from_json.start
    assert from_tmx.end == from_json.end
    assert from_tmx.paths.as_set() == from_json.paths.as_set()
    assert from_tmx.construction_points() == from_json.construction_points()


def test_load_by_explicit_path(tmp_path):
    loaded = MapLoader(tmp_path).load(MAPS_DIR / "two_routes.json")
    assert loaded.name == "two_routes"
    assert len(loaded.paths) == 2


def test_list_maps_and_info(loader, tmp_path):
    assert loader.list_maps() == ["two_routes", "two_routes_tmx"]

    info = loader.get_map_info("two_routes_tmx")
    assert info["file"] == "two_routes_tmx.tmx"
    assert info["width"] == 3
    assert info["pixel_size"] == (192, 192)
    assert info["num_layers"] == 2

    (tmp_path / "_draft.json").write_text("{}")
    (tmp_path / "notes.txt").write_text("not a map")
    assert MapLoader(tmp_path).list_maps() == []
    assert MapLoader(tmp_path / "missing").list_maps() == []


def test_snapshot_state_is_serializable(loader):
    loaded = loader.load("two_routes")
    state = loaded.to_state()

    assert isinstance(state, LoadedMapState)
    assert state.grid == [[6, 10, 12], [5, 0, 5], [15, 10, 15]]
    assert state.start == (0, 0)
    assert len(state.paths) == 2
    assert json.loads(state.model_dump_json())["end"] == [2, 0]


def test_missing_map_is_malformed_asset(loader):
    with pytest.raises(MalformedAssetError) as excinfo:
        loader.load("does_not_exist")
    assert isinstance(excinfo.value.underlying, FileNotFoundError)


def test_invalid_json_is_malformed(tmp_path):
    (tmp_path / "broken.json").write_text("{ not json")
    with pytest.raises(MalformedAssetError) as excinfo:
        MapLoader(tmp_path).load("broken")
    assert isinstance(excinfo.value.__cause__, json.JSONDecodeError)


def test_schema_violation_is_malformed(tmp_path):
    document = tiled_map(3, 1, [[1, 0, 2]], {0: {"start-point": True}, 1: {"end-point": True}})
    del document["width"]
    write_map(tmp_path, "no_width", document)

    with pytest.raises(MalformedAssetError) as excinfo:
        MapLoader(tmp_path).load("no_width")
    assert isinstance(excinfo.value.underlying, ValidationError)


def test_layer_size_mismatch_is_malformed(tmp_path):
    document = tiled_map(3, 1, [[1, 2]], {0: {"start-point": True}, 1: {"end-point": True}})
    write_map(tmp_path, "short", document)
    with pytest.raises(MalformedAssetError):
        MapLoader(tmp_path).load("short")


def test_external_tileset_is_rejected(tmp_path):
    document = tiled_map(2, 1, [[1, 2]], {})
    document["tilesets"] = [{"firstgid": 1, "source": "towerdef.tsx"}]
    write_map(tmp_path, "external", document)
    with pytest.raises(MalformedAssetError) as excinfo:
        MapLoader(tmp_path).load("external")
    assert "external tileset" in str(excinfo.value)


def test_tmx_with_unsupported_encoding(tmp_path):
    (tmp_path / "packed.tmx").write_text(
        '<?xml version="1.0"?>\n'
        '<map width="2" height="1" tilewidth="32" tileheight="32">\n'
        ' <tileset firstgid="1" name="t"/>\n'
        ' <layer name="roads" width="2" height="1">\n'
        '  <data encoding="base64" compression="zlib">eJxjYGBgAAAABAAB</data>\n'
        ' </layer>\n'
        '</map>\n'
    )
    with pytest.raises(MalformedAssetError) as excinfo:
        MapLoader(tmp_path).load("packed")
    assert "base64" in str(excinfo.value)


def test_tmx_xml_tile_encoding_and_text_properties(tmp_path):
    path = tmp_path / "xml_tiles.tmx"
    path.write_text(
        '<?xml version="1.0"?>\n'
        '<map width="3" height="1" tilewidth="16" tileheight="16">\n'
        ' <tileset firstgid="1" name="t">\n'
        '  <tile id="0"><properties><property name="start-point" type="bool" value="true"/></properties></tile>\n'
        '  <tile id="1"><properties><property name="end-point" type="bool" value="true"/></properties></tile>\n'
        '  <tile id="2"><properties>\n'
        '   <property name="road" type="bool" value="true"/>\n'
        '   <property name="left" type="bool" value="true"/>\n'
        '   <property name="right" type="bool" value="true"/>\n'
        '   <property name="note">multi\nline</property>\n'
        '  </properties></tile>\n'
        ' </tileset>\n'
        ' <layer name="roads" width="3" height="1">\n'
        '  <data><tile gid="1"/><tile gid="3"/><tile gid="2"/></data>\n'
        ' </layer>\n'
        '</map>\n'
    )
    document = parse_map_file(path)
    assert document.tilesets[0].property_table()[2]["note"] == "multi\nline"
    assert document.tilesets[0].property_table()[2]["road"] is True

    loaded = MapLoader(tmp_path).load("xml_tiles")
    assert loaded.paths.as_set() == {((0, 0), (1, 0), (2, 0))}
    assert loaded.pixel_size == (48, 16)


def test_old_style_property_objects_are_accepted(tmp_path):
    document = tiled_map(3, 1, [[1, 3, 2]], {})
    document["tilesets"][0]["tiles"] = [
        {"id": 0, "properties": {"start-point": True}},
        {"id": 1, "properties": {"end-point": True}},
        {"id": 2, "properties": {"road": True, "right": True, "left": True}},
    ]
    write_map(tmp_path, "legacy", document)
    loaded = MapLoader(tmp_path).load("legacy")
    assert len(loaded.paths) == 1


def test_missing_start_tile_names_the_map(tmp_path):
    document = tiled_map(2, 1, [[1, 2]], {1: {"end-point": True}})
    write_map(tmp_path, "no_start", document)

    with pytest.raises(ConfigurationError) as excinfo:
        MapLoader(tmp_path).load("no_start")
    assert excinfo.value.map_name == "no_start"
    assert "Map 'no_start' is misconfigured" in str(excinfo.value)


def test_start_tile_never_placed(tmp_path):
    tiles = {0: {"start-point": True}, 1: {"end-point": True}, 2: ROAD_ALL}
    write_map(tmp_path, "unplaced", tiled_map(2, 1, [[3, 2]], tiles))
    with pytest.raises(ConfigurationError) as excinfo:
        MapLoader(tmp_path).load("unplaced")
    assert "never appears" in excinfo.value.reason


def test_dense_map_raises_path_explosion(tmp_path):
    tiles = {0: {"start-point": True}, 1: {"end-point": True}, 2: ROAD_ALL}
    data = [
        3, 3, 2,
        3, 3, 3,
        1, 3, 3,
    ]
    write_map(tmp_path, "open_field", tiled_map(3, 3, [data], tiles))

    with pytest.raises(PathExplosionError):
        MapLoader(tmp_path, max_paths=5).load("open_field")

    loaded = MapLoader(tmp_path, max_paths=12).load("open_field")
    assert len(loaded.paths) == 12


def test_load_logs_each_step(loader, monkeypatch):
    monkeypatch.setenv("TOWERDEF_NO_COLOR", "1")
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        loader.load("two_routes")
    out = buf.getvalue()

    assert "[•] [Map Loader] Parsing two_routes.json" in out
    assert "[•] [Map Loader] Classified 7 tiles: 4 roads, 1 construction points" in out
    assert "[✓] [Map Loader] 'two_routes' ready with 2 routes" in out


def test_failed_load_logs_error_even_when_quiet(loader, monkeypatch):
    monkeypatch.setenv("TOWERDEF_NO_COLOR", "1")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        loader.load("two_routes")
        with pytest.raises(MalformedAssetError):
            loader.load("does_not_exist")
    out = buf.getvalue()

    assert "[Map Loader] Parsing" not in out
    assert "[!] [Map Loader] Failed to load 'does_not_exist'" in out


def test_json_group_layers_are_flattened_in_order(tmp_path):
    tiles = {
        0: {"start-point": True},
        1: {"end-point": True},
        2: {"road": True, "left": True, "right": True},
        3: {},
    }
    document = tiled_map(3, 1, [[4, 4, 4]], tiles)
    document["layers"].append(
        {
            "type": "group",
            "name": "level",
            "layers": [
                {"type": "objectgroup", "name": "spawns", "objects": []},
                {"type": "tilelayer", "name": "roads", "data": [1, 3, 2]},
            ],
        }
    )
    path = write_map(tmp_path, "grouped", document)

    assert [layer.name for layer in parse_map_file(path).tile_layers()] == ["layer 0", "roads"]
    loaded = MapLoader(tmp_path).load("grouped")
    assert loaded.paths.as_set() == {((0, 0), (1, 0), (2, 0))}

    # A layer above the group still covers what the group draws
    document["layers"].append({"type": "tilelayer", "name": "cover", "data": [0, 4, 0]})
    write_map(tmp_path, "grouped", document)
    assert len(MapLoader(tmp_path).load("grouped").paths) == 0


def test_tmx_nested_groups_are_flattened(tmp_path):
    path = tmp_path / "grouped.tmx"
    path.write_text(
        '<?xml version="1.0"?>\n'
        '<map width="3" height="1" tilewidth="16" tileheight="16">\n'
        ' <tileset firstgid="1" name="t">\n'
        '  <tile id="0"><properties><property name="start-point" type="bool" value="true"/></properties></tile>\n'
        '  <tile id="1"><properties><property name="end-point" type="bool" value="true"/></properties></tile>\n'
        '  <tile id="2"><properties>\n'
        '   <property name="road" type="bool" value="true"/>\n'
        '   <property name="left" type="bool" value="true"/>\n'
        '   <property name="right" type="bool" value="true"/>\n'
        '  </properties></tile>\n'
        ' </tileset>\n'
        ' <group name="level">\n'
        '  <layer name="ground" width="3" height="1"><data encoding="csv">4,4,4</data></layer>\n'
        '  <group name="paths">\n'
        '   <layer name="roads" width="3" height="1"><data encoding="csv">1,3,2</data></layer>\n'
        '  </group>\n'
        ' </group>\n'
        ' <objectgroup name="spawns"/>\n'
        '</map>\n'
    )

    document = parse_map_file(path)
    assert [layer.name for layer in document.tile_layers()] == ["ground", "roads"]

    loader = MapLoader(tmp_path)
    assert loader.get_map_info("grouped")["num_layers"] == 2
    loaded = loader.load("grouped")
    assert loaded.paths.as_set() == {((0, 0), (1, 0), (2, 0))}


def test_published_classification_is_read_only(loader):
    loaded = loader.load("two_routes")
    with pytest.raises(TypeError):
        loaded.classification.masks[3] = DirectionMask.NONE
    assert loaded.classification.masks[3] == DirectionMask.UP | DirectionMask.DOWN


def test_unreachable_end_is_logged_not_raised(tmp_path, monkeypatch):
    monkeypatch.setenv("TOWERDEF_NO_COLOR", "1")
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    tiles = {0: {"start-point": True}, 1: {"end-point": True}}
    write_map(tmp_path, "blocked", tiled_map(3, 1, [[1, 0, 2]], tiles))

    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        loaded = MapLoader(tmp_path).load("blocked")

    assert len(loaded.paths) == 0
    assert "[i] [Map Loader] End (2, 0) is unreachable; only 2 cells can be reached" in buf.getvalue()
