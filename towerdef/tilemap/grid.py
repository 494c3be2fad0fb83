"""Walkability grid built from Tiled map layers.

Each cell stores a ``DirectionMask`` saying in which directions a runner may
leave it. Coordinates are ``(x, y)`` with ``y`` growing upward, so ``y = 0``
is the bottom row of the map as drawn in the editor. Layer data is stored
top row first, which is why rows are flipped while replaying a layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntFlag
from typing import TYPE_CHECKING, Iterator, List, NamedTuple, Optional, Sequence, Set, Tuple

from towerdef.errors import ConfigurationError, MalformedAssetError

if TYPE_CHECKING:  # pragma: no cover
    from .classifier import TilesetClassification


# Tiled stores flip/rotation flags in the top four bits of every gid.
GID_FLAG_MASK = 0x0FFFFFFF


class Coord(NamedTuple):
    """Grid cell identifier. Compared and hashed by value."""

    x: int
    y: int


class DirectionMask(IntFlag):
    """Directions a runner may leave a cell through."""

    NONE = 0
    UP = 0b0001
    RIGHT = 0b0010
    DOWN = 0b0100
    LEFT = 0b1000
    ALL = 0b1111


# Neighbour exploration order used by route enumeration. Changing it changes
# the order paths are emitted in, never which paths are found.
DIRECTION_STEPS: Tuple[Tuple[DirectionMask, int, int], ...] = (
    (DirectionMask.UP, 0, 1),
    (DirectionMask.DOWN, 0, -1),
    (DirectionMask.RIGHT, 1, 0),
    (DirectionMask.LEFT, -1, 0),
)


@dataclass(frozen=True)
class WalkabilityGrid:
    """Immutable width x height array of direction masks, indexed ``[x][y]``."""

    width: int
    height: int
    cells: Tuple[Tuple[DirectionMask, ...], ...]

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[int]]) -> "WalkabilityGrid":
        """Build a grid from mask rows listed top row first, as a map is drawn.

        Handy for tests and debugging: ``rows[0]`` is the row with the
        highest ``y``.
        """
        height = len(rows)
        width = len(rows[0]) if rows else 0
        columns: List[List[DirectionMask]] = [
            [DirectionMask.NONE] * height for _ in range(width)
        ]
        for row_index, row in enumerate(rows):
            if len(row) != width:
                raise ValueError("All rows must have the same length")
            y = height - 1 - row_index
            for x, value in enumerate(row):
                columns[x][y] = DirectionMask(value)
        return cls(width=width, height=height, cells=tuple(tuple(col) for col in columns))

    def in_bounds(self, coord: Tuple[int, int]) -> bool:
        x, y = coord
        return 0 <= x < self.width and 0 <= y < self.height

    def mask_at(self, coord: Tuple[int, int]) -> DirectionMask:
        x, y = coord
        return self.cells[x][y]

    def can_move(self, coord: Tuple[int, int], direction: DirectionMask) -> bool:
        """Return True if leaving ``coord`` through ``direction`` stays on the grid."""
        for step_direction, dx, dy in DIRECTION_STEPS:
            if step_direction == direction:
                target = (coord[0] + dx, coord[1] + dy)
                return bool(self.mask_at(coord) & direction) and self.in_bounds(target)
        raise ValueError(f"Not a single direction: {direction!r}")

    def neighbors(self, coord: Tuple[int, int]) -> Iterator[Coord]:
        """Yield cells reachable in one legal move, in exploration order."""
        mask = self.mask_at(coord)
        x, y = coord
        for direction, dx, dy in DIRECTION_STEPS:
            if not mask & direction:
                continue
            target = Coord(x + dx, y + dy)
            if self.in_bounds(target):
                yield target

    def reachable_from(self, start: Tuple[int, int]) -> Set[Coord]:
        """Return every cell reachable from ``start`` by legal moves (start included)."""
        start = Coord(*start)
        seen = {start}
        frontier = [start]
        while frontier:
            current = frontier.pop()
            for nb in self.neighbors(current):
                if nb not in seen:
                    seen.add(nb)
                    frontier.append(nb)
        return seen

    def to_rows(self) -> List[List[int]]:
        """Return masks as plain ints, top row first (inverse of ``from_rows``)."""
        return [
            [int(self.cells[x][y]) for x in range(self.width)]
            for y in range(self.height - 1, -1, -1)
        ]


@dataclass(frozen=True)
class TilePlacement:
    """Presentation record for one occupied cell of one layer."""

    coord: Coord
    tile_id: int
    layer: int
    is_construction_point: bool = False


@dataclass(frozen=True)
class GridBuildResult:
    """Output of ``build_grid``: the grid, both endpoints and draw records."""

    grid: WalkabilityGrid
    start: Coord
    end: Coord
    placements: Tuple[TilePlacement, ...] = field(default_factory=tuple)


def build_grid(
    layers: Sequence[Sequence[Sequence[int]]],
    width: int,
    height: int,
    classification: "TilesetClassification",
    *,
    first_gid: int = 1,
) -> GridBuildResult:
    """Replay tile layers into a walkability grid.

    ``layers`` are ordered bottom to top as stored in the map; each layer is a
    list of rows of raw gids, top row first, 0 meaning empty.

    Precedence: the topmost non-empty tile at a cell decides its mask and its
    start/end role. Layers are replayed top to bottom and a claimed cell is
    skipped by every lower layer. Placement records are still emitted for
    every occupied cell of every layer since the renderer draws all of them.

    Raises:
        MalformedAssetError: If a layer does not match ``width`` x ``height``
            or references a gid below ``first_gid``.
        ConfigurationError: If the start or end tile never wins a cell, or
            wins more than one.
    """
    from .classifier import TileRole

    columns: List[List[DirectionMask]] = [
        [DirectionMask.NONE] * height for _ in range(width)
    ]
    claimed: Set[Coord] = set()
    placements: List[TilePlacement] = []
    start: Optional[Coord] = None
    end: Optional[Coord] = None

    for layer_index in range(len(layers) - 1, -1, -1):
        rows = layers[layer_index]
        if len(rows) != height or any(len(row) != width for row in rows):
            raise MalformedAssetError(
                f"layer {layer_index} does not match the map size {width}x{height}"
            )
        for row_index, row in enumerate(rows):
            y = height - 1 - row_index
            for x, raw_gid in enumerate(row):
                gid = raw_gid & GID_FLAG_MASK
                if gid == 0:
                    continue
                if gid < first_gid:
                    raise MalformedAssetError(
                        f"layer {layer_index} references gid {gid} below first gid {first_gid}"
                    )
                tile_id = gid - first_gid
                coord = Coord(x, y)
                placements.append(
                    TilePlacement(
                        coord=coord,
                        tile_id=tile_id,
                        layer=layer_index,
                        is_construction_point=tile_id in classification.construction_points,
                    )
                )

                # A higher layer already decided this cell.
                if coord in claimed:
                    continue
                claimed.add(coord)

                # Endpoints are always fully open, even if also listed as roads.
                role = classification.role_of(tile_id)
                if role is TileRole.START_POINT:
                    if start is not None:
                        raise ConfigurationError(
                            f"start tile placed more than once ({tuple(start)} and {tuple(coord)})"
                        )
                    start = coord
                    columns[x][y] = DirectionMask.ALL
                elif role is TileRole.END_POINT:
                    if end is not None:
                        raise ConfigurationError(
                            f"end tile placed more than once ({tuple(end)} and {tuple(coord)})"
                        )
                    end = coord
                    columns[x][y] = DirectionMask.ALL
                elif role is TileRole.ROAD:
                    columns[x][y] = classification.masks.get(tile_id, DirectionMask.NONE)

    if start is None:
        raise ConfigurationError("start tile never appears on the map layers")
    if end is None:
        raise ConfigurationError("end tile never appears on the map layers")

    grid = WalkabilityGrid(
        width=width,
        height=height,
        cells=tuple(tuple(column) for column in columns),
    )
    return GridBuildResult(grid=grid, start=start, end=end, placements=tuple(placements))
