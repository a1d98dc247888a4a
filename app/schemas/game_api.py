"""Pydantic schemas for the game REST endpoints."""

from typing import Any

from pydantic import BaseModel, Field

from app.schemas.game_engine import MAX_PLAYERS, MIN_PLAYERS, GameState


class CreateGameRequest(BaseModel):
    """Request body for dealing a new game in a room."""

    player_names: list[str] = Field(
        ...,
        min_length=MIN_PLAYERS,
        max_length=MAX_PLAYERS,
        description=f"Player names in turn order ({MIN_PLAYERS}-{MAX_PLAYERS})",
    )


class GameActionRequest(BaseModel):
    """A raw action payload; 'action_type' selects the action model."""

    action_type: str = Field(..., description="e.g. 'place_tile', 'buy_stocks'")
    payload: dict[str, Any] = Field(default_factory=dict)

    def to_action_dict(self) -> dict[str, Any]:
        return {**self.payload, "action_type": self.action_type}


class GameStateResponse(BaseModel):
    room_id: str
    state: GameState
    version: int


class GameActionResponse(BaseModel):
    state: GameState
    events: list[dict[str, Any]] = Field(..., description="Serialized events, in seq order")
