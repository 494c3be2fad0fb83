"""Tile-map model: classification, walkability grid and route enumeration."""

from .grid import (
    Coord,
    DirectionMask,
    GridBuildResult,
    TilePlacement,
    WalkabilityGrid,
    build_grid,
)
from .classifier import (
    TileClassification,
    TileRole,
    TilesetClassification,
    classify_tile,
    classify_tileset,
    road_mask,
)
from .paths import (
    Route,
    PathSet,
    enumerate_paths,
    is_valid_path,
    render_ascii_grid,
)
from .schemas import (
    LayerDefinition,
    LoadedMapState,
    TiledMapDocument,
    TiledProperty,
    TileDefinition,
    TilePlacementState,
    TilesetDefinition,
)

__all__ = [
    "Coord",
    "DirectionMask",
    "GridBuildResult",
    "TilePlacement",
    "WalkabilityGrid",
    "build_grid",
    "TileClassification",
    "TileRole",
    "TilesetClassification",
    "classify_tile",
    "classify_tileset",
    "road_mask",
    "Route",
    "PathSet",
    "enumerate_paths",
    "is_valid_path",
    "render_ascii_grid",
    "LayerDefinition",
    "LoadedMapState",
    "TiledMapDocument",
    "TiledProperty",
    "TileDefinition",
    "TilePlacementState",
    "TilesetDefinition",
]
