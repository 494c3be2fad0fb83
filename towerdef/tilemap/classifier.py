"""Tile metadata classifier.

Turns the custom properties a level designer sets on tileset tiles in Tiled
into typed roles:

- ``road``: walkable; ``up``/``right``/``down``/``left`` booleans say where a
  runner may go next
- ``construction-point``: slot where the player may build a tower
- ``start-point`` / ``end-point``: where runners spawn and where they leave

Role keys are presence flags, so their value is ignored. Direction flags only
count when they are the boolean ``true``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional

from towerdef.errors import ConfigurationError

from .grid import DirectionMask


class TileRole(str, Enum):
    """Role a tileset tile plays on the map."""

    ROAD = "road"
    CONSTRUCTION_POINT = "construction-point"
    START_POINT = "start-point"
    END_POINT = "end-point"
    OTHER = "other"


# Checked in this order; a tile may carry at most one of them.
ROLE_KEYS = (
    TileRole.ROAD,
    TileRole.CONSTRUCTION_POINT,
    TileRole.START_POINT,
    TileRole.END_POINT,
)

ROAD_DIRECTION_KEYS = (
    ("up", DirectionMask.UP),
    ("right", DirectionMask.RIGHT),
    ("down", DirectionMask.DOWN),
    ("left", DirectionMask.LEFT),
)


@dataclass(frozen=True)
class TileClassification:
    """Role of a single tile; ``mask`` is only meaningful for roads."""

    role: TileRole
    mask: DirectionMask = DirectionMask.NONE


@dataclass(frozen=True)
class TilesetClassification:
    """Roles of every tile in a tileset, keyed by local tile id."""

    roads: FrozenSet[int] = frozenset()
    masks: Mapping[int, DirectionMask] = field(default_factory=lambda: MappingProxyType({}))
    construction_points: FrozenSet[int] = frozenset()
    start_tile: Optional[int] = None
    end_tile: Optional[int] = None

    def __post_init__(self) -> None:
        # Published with every LoadedMap, so callers must not be able to edit it.
        object.__setattr__(self, "roads", frozenset(self.roads))
        object.__setattr__(self, "masks", MappingProxyType(dict(self.masks)))
        object.__setattr__(self, "construction_points", frozenset(self.construction_points))

    def role_of(self, tile_id: int) -> TileRole:
        """Role of ``tile_id``. Endpoints win over any road entry for the same id."""
        if tile_id == self.start_tile:
            return TileRole.START_POINT
        if tile_id == self.end_tile:
            return TileRole.END_POINT
        if tile_id in self.roads:
            return TileRole.ROAD
        if tile_id in self.construction_points:
            return TileRole.CONSTRUCTION_POINT
        return TileRole.OTHER


def road_mask(properties: Mapping[str, Any]) -> DirectionMask:
    """Build a direction mask from a road tile's boolean flags."""

    mask = DirectionMask.NONE
    for key, direction in ROAD_DIRECTION_KEYS:
        # Only a real boolean true opens a direction; "true" strings or 1 do not.
        if properties.get(key) is True:
            mask |= direction
    return mask


def classify_tile(tile_id: int, properties: Mapping[str, Any]) -> TileClassification:
    """Classify one tile from its custom properties.

    Raises:
        ConfigurationError: If the tile carries more than one role key.
    """

    roles = [role for role in ROLE_KEYS if role.value in properties]
    if len(roles) > 1:
        names = ", ".join(role.value for role in roles)
        raise ConfigurationError(f"tile {tile_id} carries conflicting roles: {names}")
    if not roles:
        return TileClassification(role=TileRole.OTHER)

    role = roles[0]
    if role is TileRole.ROAD:
        return TileClassification(role=role, mask=road_mask(properties))
    return TileClassification(role=role)


def classify_tileset(tiles: Mapping[int, Mapping[str, Any]]) -> TilesetClassification:
    """Classify every tile of a tileset.

    Args:
        tiles: Mapping of local tile id to its custom properties.

    Returns:
        TilesetClassification with road masks, construction points and the
        start/end tile ids.

    Raises:
        ConfigurationError: If no tile (or more than one) is marked as the
            start point or the end point, or a tile has conflicting roles.
    """

    roads = set()
    masks: Dict[int, DirectionMask] = {}
    construction_points = set()
    start_tile: Optional[int] = None
    end_tile: Optional[int] = None

    for tile_id in sorted(tiles):
        result = classify_tile(tile_id, tiles[tile_id])
        if result.role is TileRole.ROAD:
            roads.add(tile_id)
            masks[tile_id] = result.mask
        elif result.role is TileRole.CONSTRUCTION_POINT:
            construction_points.add(tile_id)
        elif result.role is TileRole.START_POINT:
            if start_tile is not None:
                raise ConfigurationError(
                    f"tiles {start_tile} and {tile_id} are both marked 'start-point'"
                )
            start_tile = tile_id
        elif result.role is TileRole.END_POINT:
            if end_tile is not None:
                raise ConfigurationError(
                    f"tiles {end_tile} and {tile_id} are both marked 'end-point'"
                )
            end_tile = tile_id

    if start_tile is None:
        raise ConfigurationError("no tile defined as starting point ('start-point')")
    if end_tile is None:
        raise ConfigurationError("no tile defined as end point ('end-point')")

    return TilesetClassification(
        roads=frozenset(roads),
        masks=masks,
        construction_points=frozenset(construction_points),
        start_tile=start_tile,
        end_tile=end_tile,
    )
