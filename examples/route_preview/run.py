"""
Route Preview

Loads every map in examples/maps and prints its walkability grid followed by
each route a runner can take from the start tile to the end tile.

Run: uv run python examples/route_preview/run.py [map_name]
"""

import sys

from towerdef import MapLoadError, MapLoader, render_ascii_grid
from towerdef.config import Config


def preview(loader: MapLoader, map_name: str) -> None:
    loaded = loader.load(map_name)
    width_px, height_px = loaded.pixel_size
    print(f"\n{loaded.name}: {loaded.width}x{loaded.height} tiles ({width_px}x{height_px} px)")
    print(f"Construction points: {[tuple(c) for c in loaded.construction_points()]}")
    print(render_ascii_grid(loaded.grid, start=loaded.start, end=loaded.end))

    for index, route in enumerate(loaded.paths, start=1):
        print(f"\nRoute {index} ({len(route)} cells)")
        print(render_ascii_grid(loaded.grid, path=route, start=loaded.start, end=loaded.end))


def main() -> int:
    Config.validate()
    print(Config.display())

    loader = MapLoader()
    names = sys.argv[1:] or loader.list_maps()
    failed = 0
    for name in names:
        try:
            preview(loader, name)
        except MapLoadError as exc:
            print(exc)
            failed += 1
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
