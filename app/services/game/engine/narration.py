"""Game log helpers."""

from app.schemas.game_engine import GameLogEntry, GameState, Player

SYSTEM_ID = "system"
SYSTEM_NAME = "System"


def player_entry(player: Player, action: str, details: str | None = None) -> GameLogEntry:
    return GameLogEntry(
        player_id=player.player_id,
        player_name=player.name,
        action=action,
        details=details,
    )


def system_entry(action: str, details: str | None = None) -> GameLogEntry:
    return GameLogEntry(
        player_id=SYSTEM_ID,
        player_name=SYSTEM_NAME,
        action=action,
        details=details,
    )


def with_log(state: GameState, *entries: GameLogEntry) -> list[GameLogEntry]:
    """The state's log with entries appended, as a new list."""
    return [*state.game_log, *entries]
