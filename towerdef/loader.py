"""
Map loading: Tiled asset in, immutable route snapshot out.

MapLoader runs the whole ingestion pipeline for one map selection:

1. Resolve the map name to a ``.tmx``/``.tmj``/``.json`` file in the maps directory
2. Parse it into a validated ``TiledMapDocument``
3. Classify the first tileset's tiles (roads, build slots, start, end)
4. Replay tile layers into a walkability grid
5. Enumerate every simple route from start to end

The result is published as one frozen ``LoadedMap``. Any failure raises a
``MapLoadError`` subclass and nothing is published, so callers keep whatever
map they had before.

Map file structure (Tiled JSON; TMX carries the same data as XML):
```json
{
  "width": 3, "height": 3, "tilewidth": 32, "tileheight": 32,
  "layers": [{"type": "tilelayer", "data": [0, 2, 0, ...]}],
  "tilesets": [{
    "firstgid": 1,
    "tiles": [
      {"id": 0, "properties": [{"name": "road", "type": "bool", "value": true},
                                {"name": "up", "type": "bool", "value": true}]},
      {"id": 1, "properties": [{"name": "start-point", "type": "bool", "value": true}]}
    ]
  }]
}
```

Usage:
    loader = MapLoader()
    loaded = loader.load("two_routes")
    for route in loaded.paths:
        ...
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from .config import Config
from .errors import ConfigurationError, MalformedAssetError, MapLoadError
from .logging_utils import (
    EMOJI_DETERMINISTIC,
    EMOJI_ERROR,
    EMOJI_INFO,
    EMOJI_SUCCESS,
    log_deterministic,
    log_error,
    log_info,
    log_success,
)
from .tilemap import (
    Coord,
    LoadedMapState,
    PathSet,
    TiledMapDocument,
    TilePlacement,
    TilePlacementState,
    TilesetClassification,
    WalkabilityGrid,
    build_grid,
    classify_tileset,
    enumerate_paths,
)

MAP_SUFFIXES = (".tmx", ".tmj", ".json")


@dataclass(frozen=True)
class LoadedMap:
    """Everything the simulation and renderer need from one loaded map.

    Read-only for as long as the map is active.
    """

    name: str
    source: Path
    width: int
    height: int
    tile_width: int
    tile_height: int
    grid: WalkabilityGrid
    start: Coord
    end: Coord
    paths: PathSet
    placements: Tuple[TilePlacement, ...] = field(default_factory=tuple)
    classification: TilesetClassification = field(default_factory=TilesetClassification)

    @property
    def pixel_size(self) -> Tuple[int, int]:
        """Map size in pixels, used to size and centre the camera."""
        return self.width * self.tile_width, self.height * self.tile_height

    def construction_points(self) -> List[Coord]:
        """Cells where a tower may be built, in placement order, without duplicates."""
        seen: Dict[Coord, None] = {}
        for placement in self.placements:
            if placement.is_construction_point:
                seen.setdefault(placement.coord, None)
        return list(seen)

    def to_state(self) -> LoadedMapState:
        return LoadedMapState(
            name=self.name,
            width=self.width,
            height=self.height,
            tile_width=self.tile_width,
            tile_height=self.tile_height,
            start=tuple(self.start),
            end=tuple(self.end),
            grid=self.grid.to_rows(),
            paths=[[tuple(cell) for cell in path] for path in self.paths],
            placements=[
                TilePlacementState(
                    coord=tuple(p.coord),
                    tile_id=p.tile_id,
                    layer=p.layer,
                    is_construction_point=p.is_construction_point,
                )
                for p in self.placements
            ],
        )


class MapLoader:
    """Load Tiled maps from a directory and turn them into ``LoadedMap`` snapshots.

    Directory structure:
    - Default: ``Config.MAPS_DIR`` ({PROJECT_ROOT}/examples/maps unless overridden)
    - Override via constructor: MapLoader(Path("/custom/maps"))
    - Map files: {map_name}.tmx, {map_name}.tmj or {map_name}.json

    Route bounds default to ``Config.MAX_PATHS`` / ``Config.MAX_PATH_DEPTH``.
    """

    def __init__(
        self,
        maps_dir: Optional[Path] = None,
        *,
        max_paths: Optional[int] = None,
        max_depth: Optional[int] = None,
    ):
        self.maps_dir = Path(maps_dir) if maps_dir is not None else Config.MAPS_DIR
        self.max_paths = max_paths if max_paths is not None else Config.MAX_PATHS
        self.max_depth = max_depth if max_depth is not None else Config.MAX_PATH_DEPTH

    def load(self, map_name: Union[str, Path]) -> LoadedMap:
        """Run the full pipeline for one map.

        Args:
            map_name: Map name without extension (looked up in ``maps_dir``)
                      or a path to a map file.

        Returns:
            Frozen LoadedMap with grid, start/end, every route and draw records.

        Raises:
            MalformedAssetError: If the file is missing or cannot be parsed
            ConfigurationError: If start/end roles are missing or inconsistent
            PathExplosionError: If route enumeration exceeds its bounds
        """
        name = Path(map_name).stem
        try:
            source = self.resolve(map_name)
            log_deterministic(f"{EMOJI_DETERMINISTIC} [Map Loader] Parsing {source.name}")
            document = parse_map_file(source)
            tileset = _primary_tileset(document, source)

            classification = classify_tileset(tileset.property_table())
            log_deterministic(
                f"{EMOJI_DETERMINISTIC} [Map Loader] Classified {len(tileset.tiles)} tiles: "
                f"{len(classification.roads)} roads, "
                f"{len(classification.construction_points)} construction points"
            )

            built = build_grid(
                document.layer_rows(),
                document.width,
                document.height,
                classification,
                first_gid=tileset.firstgid,
            )
            log_deterministic(
                f"{EMOJI_DETERMINISTIC} [Map Loader] Built {document.width}x{document.height} grid "
                f"(start={tuple(built.start)}, end={tuple(built.end)})"
            )

            paths = enumerate_paths(
                built.grid,
                built.start,
                built.end,
                max_paths=self.max_paths,
                max_depth=self.max_depth,
            )
            if not paths:
                reachable = built.grid.reachable_from(built.start)
                log_info(
                    f"{EMOJI_INFO} [Map Loader] End {tuple(built.end)} is unreachable; "
                    f"only {len(reachable)} cells can be reached from the start"
                )
        except ConfigurationError as exc:
            if exc.map_name is None:
                named = ConfigurationError(exc.reason, map_name=name)
                log_error(f"{EMOJI_ERROR} [Map Loader] {named.args[0].splitlines()[0]}")
                raise named from exc
            log_error(f"{EMOJI_ERROR} [Map Loader] {exc.args[0].splitlines()[0]}")
            raise
        except MapLoadError as exc:
            log_error(f"{EMOJI_ERROR} [Map Loader] Failed to load '{name}': {exc.args[0].splitlines()[0]}")
            raise

        log_success(f"{EMOJI_SUCCESS} [Map Loader] '{name}' ready with {len(paths)} routes")
        return LoadedMap(
            name=name,
            source=source,
            width=document.width,
            height=document.height,
            tile_width=document.tilewidth,
            tile_height=document.tileheight,
            grid=built.grid,
            start=built.start,
            end=built.end,
            paths=paths,
            placements=built.placements,
            classification=classification,
        )

    def resolve(self, map_name: Union[str, Path]) -> Path:
        """Find the file behind a map name.

        Raises:
            MalformedAssetError: If no matching map file exists
        """
        candidate = Path(map_name)
        if candidate.suffix in MAP_SUFFIXES:
            if candidate.is_file():
                return candidate
            if (self.maps_dir / candidate.name).is_file():
                return self.maps_dir / candidate.name
        else:
            for suffix in MAP_SUFFIXES:
                path = self.maps_dir / f"{map_name}{suffix}"
                if path.is_file():
                    return path

        missing = FileNotFoundError(f"Map '{map_name}' not found in {self.maps_dir}")
        raise MalformedAssetError(
            "map file not found", source=str(map_name), underlying=missing
        ) from missing

    def list_maps(self) -> List[str]:
        """List all available maps.

        Returns:
            Sorted map names (without extension); files starting with ``_`` are skipped
        """
        if not self.maps_dir.exists():
            return []

        names = {
            f.stem for f in self.maps_dir.iterdir()
            if f.is_file() and f.suffix in MAP_SUFFIXES and not f.name.startswith("_")
        }
        return sorted(names)

    def get_map_info(self, map_name: Union[str, Path]) -> Dict[str, Any]:
        """Get map metadata without building the grid or enumerating routes.

        Returns:
            Dict with name, file, width, height, tile size, pixel size and layer count
        """
        source = self.resolve(map_name)
        document = parse_map_file(source)
        return {
            "name": source.stem,
            "file": source.name,
            "width": document.width,
            "height": document.height,
            "tile_width": document.tilewidth,
            "tile_height": document.tileheight,
            "pixel_size": document.pixel_size,
            "num_layers": len(document.tile_layers()),
        }


def load_map(map_name: Union[str, Path]) -> LoadedMap:
    """Convenience function to load a map from the configured maps directory."""
    loader = MapLoader()
    return loader.load(map_name)


# ---------------------------------------------------------------------------
# Asset parsing
# ---------------------------------------------------------------------------

def parse_map_file(path: Path) -> TiledMapDocument:
    """Parse a Tiled map file into a validated document.

    ``.tmx`` files are read as XML, ``.json``/``.tmj`` as JSON.

    Raises:
        MalformedAssetError: If the file cannot be read, decoded or validated
    """
    if path.suffix == ".tmx":
        raw = _read_tmx(path)
    else:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise MalformedAssetError(
                "not a readable JSON map", source=str(path), underlying=exc
            ) from exc

    try:
        return TiledMapDocument.model_validate(raw)
    except ValidationError as exc:
        raise MalformedAssetError(
            "does not match the Tiled map format", source=str(path), underlying=exc
        ) from exc


def _primary_tileset(document: TiledMapDocument, source: Path):
    # Role properties are read from the first tileset only.
    if not document.tilesets:
        raise MalformedAssetError("map has no tileset", source=str(source))
    tileset = min(document.tilesets, key=lambda ts: ts.firstgid)
    if tileset.source:
        raise MalformedAssetError(
            f"external tileset '{tileset.source}' is not supported; embed it in the map",
            source=str(source),
        )
    return tileset


def _read_tmx(path: Path) -> Dict[str, Any]:
    """Convert a TMX document into the Tiled JSON shape."""
    try:
        root = ET.parse(path).getroot()
    except (OSError, ET.ParseError) as exc:
        raise MalformedAssetError(
            "not a readable TMX map", source=str(path), underlying=exc
        ) from exc

    if root.tag != "map":
        raise MalformedAssetError(f"root element is <{root.tag}>, expected <map>", source=str(path))

    raw: Dict[str, Any] = {
        "width": root.get("width"),
        "height": root.get("height"),
        "tilewidth": root.get("tilewidth"),
        "tileheight": root.get("tileheight"),
        "layers": _tmx_layers(root, path),
        "tilesets": [_tmx_tileset(child, path) for child in root.findall("tileset")],
    }
    return raw


def _tmx_layers(parent: ET.Element, path: Path) -> List[Dict[str, Any]]:
    # Tile layers and groups, bottom to top; object and image layers are skipped.
    layers: List[Dict[str, Any]] = []
    for child in parent:
        if child.tag == "layer":
            layers.append(_tmx_layer(child, path))
        elif child.tag == "group":
            layers.append(
                {"name": child.get("name", ""), "type": "group", "layers": _tmx_layers(child, path)}
            )
    return layers


def _tmx_tileset(element: ET.Element, path: Path) -> Dict[str, Any]:
    return {
        "firstgid": element.get("firstgid", "1"),
        "name": element.get("name", ""),
        "tilewidth": element.get("tilewidth"),
        "tileheight": element.get("tileheight"),
        "tilecount": element.get("tilecount"),
        "source": element.get("source"),
        "tiles": [
            {
                "id": tile.get("id"),
                "type": tile.get("type") or tile.get("class"),
                "properties": _tmx_properties(tile, path),
            }
            for tile in element.findall("tile")
        ],
    }


def _tmx_properties(element: ET.Element, path: Path) -> List[Dict[str, Any]]:
    container = element.find("properties")
    if container is None:
        return []
    properties = []
    for prop in container.findall("property"):
        prop_type = prop.get("type", "string")
        # Multi-line string values are stored as element text instead of an attribute.
        text = prop.get("value")
        if text is None:
            text = prop.text or ""
        properties.append(
            {"name": prop.get("name"), "type": prop_type, "value": _coerce_property(prop_type, text, path)}
        )
    return properties


def _coerce_property(prop_type: str, text: str, path: Path) -> Any:
    try:
        if prop_type == "bool":
            return text == "true"
        if prop_type == "int":
            return int(text)
        if prop_type == "float":
            return float(text)
    except ValueError as exc:
        raise MalformedAssetError(
            f"property value {text!r} is not a valid {prop_type}", source=str(path), underlying=exc
        ) from exc
    return text


def _tmx_layer(element: ET.Element, path: Path) -> Dict[str, Any]:
    name = element.get("name", "")
    data_element = element.find("data")
    gids: List[int] = []
    if data_element is not None:
        if data_element.find("chunk") is not None:
            raise MalformedAssetError(f"layer '{name}': infinite maps are not supported", source=str(path))
        encoding = data_element.get("encoding")
        try:
            if encoding == "csv":
                text = data_element.text or ""
                gids = [int(value) for value in text.replace("\n", "").split(",") if value.strip()]
            elif encoding is None:
                gids = [int(tile.get("gid", "0")) for tile in data_element.findall("tile")]
            else:
                raise MalformedAssetError(
                    f"layer '{name}': unsupported data encoding '{encoding}', save the map with CSV",
                    source=str(path),
                )
        except ValueError as exc:
            raise MalformedAssetError(
                f"layer '{name}' contains a non-numeric gid", source=str(path), underlying=exc
            ) from exc

    return {
        "name": name,
        "type": "tilelayer",
        "width": element.get("width"),
        "height": element.get("height"),
        "data": gids,
    }
