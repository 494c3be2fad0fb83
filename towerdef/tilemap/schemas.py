"""Pydantic schemas for Tiled map documents and loaded-map snapshots.

The document models follow the Tiled JSON map format closely enough that a
``.json``/``.tmj`` export validates as-is; the TMX reader in
``towerdef.loader`` converts XML into the same shape. ``LoadedMapState``
mirrors the ``LoadedMap`` dataclass so a loaded map can be serialized.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TiledProperty(BaseModel):
    """A single custom property attached to a tile."""

    name: str
    type: str = "string"
    value: Any = None


class TileDefinition(BaseModel):
    """A tileset entry that carries custom properties."""

    model_config = ConfigDict(extra="ignore")

    id: int
    type: Optional[str] = None
    properties: List[TiledProperty] = Field(default_factory=list)

    @field_validator("properties", mode="before")
    @classmethod
    def _accept_property_dict(cls, value: Any) -> Any:
        # Old Tiled exports write properties as a plain {name: value} object.
        if isinstance(value, dict):
            return [{"name": key, "value": item} for key, item in value.items()]
        return value

    def property_map(self) -> Dict[str, Any]:
        return {prop.name: prop.value for prop in self.properties}


class TilesetDefinition(BaseModel):
    """Embedded tileset. External tilesets (``source``) are rejected by the loader."""

    model_config = ConfigDict(extra="ignore")

    firstgid: int = Field(1, ge=1)
    name: str = ""
    tilewidth: Optional[int] = None
    tileheight: Optional[int] = None
    tilecount: Optional[int] = None
    source: Optional[str] = None
    tiles: List[TileDefinition] = Field(default_factory=list)

    def property_table(self) -> Dict[int, Dict[str, Any]]:
        """Map local tile id to its custom properties."""
        return {tile.id: tile.property_map() for tile in self.tiles}


class LayerDefinition(BaseModel):
    """A map layer. Only ``tilelayer`` layers feed the walkability grid.

    ``group`` layers carry their children in ``layers``, bottom to top.
    """

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    type: str = "tilelayer"
    width: Optional[int] = None
    height: Optional[int] = None
    data: List[int] = Field(default_factory=list)
    layers: List[LayerDefinition] = Field(default_factory=list)

    @property
    def is_tile_layer(self) -> bool:
        return self.type == "tilelayer"


LayerDefinition.model_rebuild()


def iter_tile_layers(layers: Sequence[LayerDefinition]) -> Iterator[LayerDefinition]:
    """Yield tile layers bottom to top, flattening groups in document order."""
    for layer in layers:
        if layer.type == "group":
            yield from iter_tile_layers(layer.layers)
        elif layer.is_tile_layer:
            yield layer


class TiledMapDocument(BaseModel):
    """Parsed Tiled map: size, layers bottom to top, tilesets."""

    model_config = ConfigDict(extra="ignore")

    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)
    tilewidth: int = Field(..., ge=1)
    tileheight: int = Field(..., ge=1)
    layers: List[LayerDefinition] = Field(default_factory=list)
    tilesets: List[TilesetDefinition] = Field(default_factory=list)

    def tile_layers(self) -> List[LayerDefinition]:
        return list(iter_tile_layers(self.layers))

    def layer_rows(self) -> List[List[List[int]]]:
        """Split each tile layer's flat data into rows, top row first.

        Layers whose data length does not match the map are returned as-is
        (one short row list) so the grid builder reports the mismatch.
        """
        rows_per_layer: List[List[List[int]]] = []
        for layer in self.tile_layers():
            data = layer.data
            if len(data) != self.width * self.height:
                rows_per_layer.append([list(data)])
                continue
            rows_per_layer.append(
                [data[i:i + self.width] for i in range(0, len(data), self.width)]
            )
        return rows_per_layer

    @property
    def pixel_size(self) -> Tuple[int, int]:
        return self.width * self.tilewidth, self.height * self.tileheight


class TilePlacementState(BaseModel):
    """Serializable presentation record for one occupied cell."""

    coord: Tuple[int, int]
    tile_id: int
    layer: int
    is_construction_point: bool = False


class LoadedMapState(BaseModel):
    """Serializable snapshot of a fully loaded map."""

    name: str
    width: int
    height: int
    tile_width: int
    tile_height: int
    start: Tuple[int, int]
    end: Tuple[int, int]
    grid: List[List[int]] = Field(
        default_factory=list,
        description="Direction masks, top row first",
    )
    paths: List[List[Tuple[int, int]]] = Field(
        default_factory=list,
        description="Every simple route from start to end",
    )
    placements: List[TilePlacementState] = Field(default_factory=list)
