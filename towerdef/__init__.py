"""
Towerdef - tile-map route ingestion for tower-defense simulations.

Turns a Tiled map into a walkability grid and every route a runner can take
from the start tile to the end tile.

Rendering, input and asset management belong to the game engine.
This package only reads the map file and publishes an immutable snapshot.
"""

__version__ = "0.1.0"

# Errors
from .errors import (
    MapLoadError,
    ConfigurationError,
    MalformedAssetError,
    PathExplosionError,
)

# Tile-map model
from .tilemap import (
    Coord,
    DirectionMask,
    WalkabilityGrid,
    TilePlacement,
    TileRole,
    TilesetClassification,
    PathSet,
    classify_tileset,
    build_grid,
    enumerate_paths,
    is_valid_path,
    render_ascii_grid,
    LoadedMapState,
)

# Loading and session helpers
from .loader import LoadedMap, MapLoader, load_map, parse_map_file
from .session import GameState, MapSession

__all__ = [
    # Errors
    "MapLoadError",
    "ConfigurationError",
    "MalformedAssetError",
    "PathExplosionError",
    # Tile-map model
    "Coord",
    "DirectionMask",
    "WalkabilityGrid",
    "TilePlacement",
    "TileRole",
    "TilesetClassification",
    "PathSet",
    "classify_tileset",
    "build_grid",
    "enumerate_paths",
    "is_valid_path",
    "render_ascii_grid",
    "LoadedMapState",
    # Loading
    "LoadedMap",
    "MapLoader",
    "load_map",
    "parse_map_file",
    # Session
    "GameState",
    "MapSession",
]
