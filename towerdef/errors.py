"""Exceptions raised while loading a map.

Every failure in the load sequence aborts the map transition as a whole, so
all of them share ``MapLoadError`` as a base. Callers that only need to keep
the previous map alive can catch that one class.
"""

from __future__ import annotations

from typing import Optional


class MapLoadError(Exception):
    """Base class for all map loading failures."""


class ConfigurationError(MapLoadError):
    """Raised when a map is missing a role tile or uses roles inconsistently.

    Covers a tileset without a start or end tile, two tiles claiming the same
    role, a tile carrying two role markers, and a role tile that never shows
    up on the map geometry.
    """

    def __init__(self, reason: str, *, map_name: Optional[str] = None) -> None:
        self.reason = reason
        self.map_name = map_name
        prefix = f"Map '{map_name}' is misconfigured" if map_name else "Map is misconfigured"
        message = (
            f"{prefix}: {reason}\n\n"
            "Remediation tips:\n"
            "  - Open the tileset in Tiled and check the custom properties\n"
            "  - Exactly one tile must carry 'start-point' and one 'end-point'\n"
            "  - A tile may carry only one of road/construction-point/start-point/end-point"
        )
        super().__init__(message)


class MalformedAssetError(MapLoadError):
    """Raised when a map file cannot be read or parsed.

    The original parser/validation exception is kept on ``underlying`` and
    chained via ``raise ... from``.
    """

    def __init__(
        self,
        reason: str,
        *,
        source: Optional[str] = None,
        underlying: Optional[Exception] = None,
    ) -> None:
        self.reason = reason
        self.source = source
        self.underlying = underlying
        location = f" ({source})" if source else ""
        message = f"Malformed map asset{location}: {reason}"
        if underlying is not None:
            message += f"\n  caused by: {underlying}"
        super().__init__(message)


class PathExplosionError(MapLoadError):
    """Raised when route enumeration exceeds its configured bounds.

    ``kind`` is ``"paths"`` when too many routes were found and ``"depth"``
    when a single route grew longer than allowed.
    """

    def __init__(self, *, kind: str, limit: int) -> None:
        self.kind = kind
        self.limit = limit
        if kind == "paths":
            detail = f"more than {limit} distinct routes from start to end"
        else:
            detail = f"a route longer than {limit} cells"
        message = (
            f"Route enumeration aborted: found {detail}.\n\n"
            "Remediation tips:\n"
            "  - Restrict road tile directions so the map branches less\n"
            "  - Raise TOWERDEF_MAX_PATHS / TOWERDEF_MAX_PATH_DEPTH if the map is intentional"
        )
        super().__init__(message)
