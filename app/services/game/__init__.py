"""Game service module.

Provides:
- Game initialization (start_game.py)
- Game engine processing (engine/)
- Authoritative per-room state storage (store.py)
"""

# Re-export from engine for convenience
from .engine import (
    GameAction,
    PlaceTileAction,
    ProcessResult,
    build_action_from_payload,
    has_playable_tiles,
    process_action,
)
from .start_game import initialize_game, validate_game_settings

__all__ = [
    # Initialization
    "initialize_game",
    "validate_game_settings",
    # Engine
    "GameAction",
    "PlaceTileAction",
    "ProcessResult",
    "has_playable_tiles",
    "process_action",
    "build_action_from_payload",
]
