"""Route enumeration over a walkability grid.

Runners may take any simple route (no cell visited twice) from the start cell
to the end cell, so the loader enumerates all of them once per map. The number
of routes grows exponentially with branching, hence the mandatory bounds.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterator, List, Optional, Sequence, Set, Tuple

from towerdef.config import Config
from towerdef.errors import ConfigurationError, PathExplosionError

from .grid import DIRECTION_STEPS, Coord, WalkabilityGrid

Route = Tuple[Coord, ...]


@dataclass(frozen=True)
class PathSet:
    """Immutable collection of every route found for one map.

    Emission order follows the neighbour exploration order but is not
    something callers should rely on; compare with ``as_set()``.
    """

    paths: Tuple[Route, ...] = ()

    def __len__(self) -> int:
        return len(self.paths)

    def __iter__(self) -> Iterator[Route]:
        return iter(self.paths)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (tuple, list)):
            return False
        if not all(isinstance(cell, (tuple, list)) and len(cell) == 2 for cell in path):
            return False
        return tuple(Coord(*cell) for cell in path) in self.as_set()

    def as_set(self) -> FrozenSet[Route]:
        return frozenset(self.paths)

    def cells(self) -> Set[Coord]:
        """Every cell used by at least one route."""
        return {cell for path in self.paths for cell in path}


def enumerate_paths(
    grid: WalkabilityGrid,
    start: Tuple[int, int],
    end: Tuple[int, int],
    *,
    max_paths: Optional[int] = None,
    max_depth: Optional[int] = None,
) -> PathSet:
    """Return every simple path from ``start`` to ``end``.

    Depth-first search over an explicit stack. The current route lives in a
    single buffer that is extended before descending into a neighbour and
    rolled back when that neighbour's branches are exhausted, so sibling
    branches never see each other's cells. A route stops at ``end``; it is
    never extended through it.

    Args:
        grid: Walkability grid to search.
        start: Spawn cell.
        end: Exit cell.
        max_paths: Maximum number of routes; defaults to ``Config.MAX_PATHS``.
        max_depth: Maximum route length in cells; defaults to
            ``Config.MAX_PATH_DEPTH``.

    Returns:
        PathSet, empty when ``end`` cannot be reached.

    Raises:
        PathExplosionError: If more than ``max_paths`` routes exist or any
            branch grows longer than ``max_depth`` cells.
        ConfigurationError: If an endpoint lies outside the grid or a bound
            is not positive.
    """

    max_paths = Config.MAX_PATHS if max_paths is None else max_paths
    max_depth = Config.MAX_PATH_DEPTH if max_depth is None else max_depth
    if max_paths < 1 or max_depth < 1:
        raise ConfigurationError(
            f"route bounds must be positive (max_paths={max_paths}, max_depth={max_depth})"
        )

    start = Coord(*start)
    end = Coord(*end)
    for label, coord in (("start", start), ("end", end)):
        if not grid.in_bounds(coord):
            raise ConfigurationError(
                f"{label} cell {tuple(coord)} lies outside the {grid.width}x{grid.height} grid"
            )

    if start == end:
        return PathSet(paths=((start,),))

    found: List[Route] = []
    path: List[Coord] = [start]
    on_path: Set[Coord] = {start}
    stack: List[Iterator[Coord]] = [grid.neighbors(start)]

    while stack:
        nxt = next(stack[-1], None)
        if nxt is None:
            # Branch exhausted: roll back the cell that opened it.
            stack.pop()
            on_path.discard(path.pop())
            continue

        # Never walk back onto the current route.
        if nxt in on_path:
            continue

        if len(path) + 1 > max_depth:
            raise PathExplosionError(kind="depth", limit=max_depth)

        if nxt == end:
            found.append(tuple(path) + (nxt,))
            if len(found) > max_paths:
                raise PathExplosionError(kind="paths", limit=max_paths)
            continue

        path.append(nxt)
        on_path.add(nxt)
        stack.append(grid.neighbors(nxt))

    return PathSet(paths=tuple(found))


def is_valid_path(
    grid: WalkabilityGrid,
    path: Sequence[Tuple[int, int]],
    start: Tuple[int, int],
    end: Tuple[int, int],
) -> bool:
    """Check that ``path`` is a legal route from ``start`` to ``end``.

    A legal route starts at ``start``, ends at ``end``, never repeats a cell
    and each step leaves its source cell through a direction that cell's mask
    allows.
    """

    if not path:
        return False
    cells = [Coord(*cell) for cell in path]
    if cells[0] != tuple(start) or cells[-1] != tuple(end):
        return False
    if len(set(cells)) != len(cells):
        return False
    if not all(grid.in_bounds(cell) for cell in cells):
        return False

    for source, target in zip(cells, cells[1:]):
        dx, dy = target.x - source.x, target.y - source.y
        allowed = False
        for direction, step_x, step_y in DIRECTION_STEPS:
            if (dx, dy) == (step_x, step_y):
                allowed = grid.can_move(source, direction)
                break
        if not allowed:
            return False
    return True


# One glyph per direction mask (UP=1, RIGHT=2, DOWN=4, LEFT=8).
_MASK_GLYPHS = {
    0: "·", 1: "╵", 2: "╶", 3: "└",
    4: "╷", 5: "│", 6: "┌", 7: "├",
    8: "╴", 9: "┘", 10: "─", 11: "┴",
    12: "┐", 13: "┤", 14: "┬", 15: "┼",
}


def render_ascii_grid(
    grid: WalkabilityGrid,
    *,
    path: Optional[Sequence[Tuple[int, int]]] = None,
    start: Optional[Tuple[int, int]] = None,
    end: Optional[Tuple[int, int]] = None,
) -> str:
    """Render the grid top row first, one glyph per cell.

    Cells on ``path`` are drawn as ``*``; ``start`` and ``end`` as ``S`` and
    ``E``. Meant for debug output and example scripts.
    """

    on_path = {Coord(*cell) for cell in path} if path else set()
    start = Coord(*start) if start is not None else None
    end = Coord(*end) if end is not None else None

    lines: List[str] = []
    for y in range(grid.height - 1, -1, -1):
        row: List[str] = []
        for x in range(grid.width):
            cell = Coord(x, y)
            if cell == start:
                row.append("S")
            elif cell == end:
                row.append("E")
            elif cell in on_path:
                row.append("*")
            else:
                row.append(_MASK_GLYPHS[int(grid.mask_at(cell))])
        lines.append("".join(row))
    return "\n".join(lines)
