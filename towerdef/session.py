"""Map selection state.

Tracks whether the player is in the main menu or inside a map, and which
``LoadedMap`` is active. A map only becomes active once it has loaded
completely; a failed load leaves the previous state untouched.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Union
from pathlib import Path

from .errors import MapLoadError
from .loader import LoadedMap, MapLoader
from .logging_utils import EMOJI_ERROR, EMOJI_INFO, log_error, log_info


class GameState(str, Enum):
    MAIN_MENU = "main_menu"
    GAME = "game"


class MapSession:
    """Owns the active map for the lifetime of a game session."""

    def __init__(self, loader: Optional[MapLoader] = None):
        self.loader = loader or MapLoader()
        self.state = GameState.MAIN_MENU
        self.active_map: Optional[LoadedMap] = None

    def available_maps(self) -> List[str]:
        """Names of the maps the menu should offer, one per level button."""
        return self.loader.list_maps()

    def select_map(self, map_name: Union[str, Path]) -> LoadedMap:
        """Load ``map_name`` and make it the active map.

        Raises:
            MapLoadError: Propagated from the loader; state and active map are unchanged.
        """
        try:
            loaded = self.loader.load(map_name)
        except MapLoadError:
            log_error(f"{EMOJI_ERROR} [Session] Staying in {self.state.value}, '{map_name}' failed to load")
            raise

        self.active_map = loaded
        self.state = GameState.GAME
        log_info(f"{EMOJI_INFO} [Session] Entered map '{loaded.name}'")
        return loaded

    def return_to_menu(self) -> None:
        self.active_map = None
        self.state = GameState.MAIN_MENU
