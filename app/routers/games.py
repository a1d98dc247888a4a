"""REST endpoints for playing a game.

The caller's identity arrives in the X-Player-Id header; authenticating it
is the job of whatever sits in front of this API.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, status

from app.dependencies.store import get_game_store
from app.schemas.game_api import (
    CreateGameRequest,
    GameActionRequest,
    GameActionResponse,
    GameStateResponse,
)
from app.schemas.game_engine import GameSettings, RejectionCode
from app.services.game.engine import build_action_from_payload
from app.services.game.store import GameAlreadyExistsError, GameStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/games", tags=["games"])

Store = Annotated[GameStore, Depends(get_game_store)]
PlayerId = Annotated[str, Header(alias="X-Player-Id", description="Acting player's id")]

_FORBIDDEN_CODES = {RejectionCode.NOT_YOUR_TURN, RejectionCode.NOT_HOST}
_NOT_FOUND_CODES = {"GAME_NOT_FOUND"}
_CONFLICT_CODES = {"STATE_CONFLICT"}


def _error(status_code: int, error_code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"error_code": getattr(error_code, "value", error_code), "message": message},
    )


def _status_for(error_code: str) -> int:
    if error_code in _FORBIDDEN_CODES:
        return status.HTTP_403_FORBIDDEN
    if error_code in _NOT_FOUND_CODES:
        return status.HTTP_404_NOT_FOUND
    if error_code in _CONFLICT_CODES:
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


@router.post(
    "/{room_id}", response_model=GameStateResponse, status_code=status.HTTP_201_CREATED
)
async def create_game(room_id: str, request: CreateGameRequest, store: Store):
    """Deal a new game for the room with the given players in turn order.

    Raises:
        HTTPException 400: If the player list is invalid.
        HTTPException 409: If the room already has a game.
    """
    logger.info("POST /games/%s - players: %s", room_id, request.player_names)
    try:
        state = await store.create_game(room_id, GameSettings.from_names(request.player_names))
    except GameAlreadyExistsError as e:
        raise _error(status.HTTP_409_CONFLICT, "GAME_EXISTS", str(e)) from e
    except ValueError as e:
        raise _error(status.HTTP_400_BAD_REQUEST, "INVALID_SETTINGS", str(e)) from e

    return GameStateResponse(room_id=room_id, state=state, version=1)


@router.get("/{room_id}", response_model=GameStateResponse)
async def get_game(room_id: str, store: Store):
    stored = await store.get_game(room_id)
    if stored is None:
        raise _error(status.HTTP_404_NOT_FOUND, "GAME_NOT_FOUND", "No game for this room")
    return GameStateResponse(room_id=room_id, state=stored.state, version=stored.version)


@router.post("/{room_id}/actions", response_model=GameActionResponse)
async def apply_action(
    room_id: str,
    request: GameActionRequest,
    player_id: PlayerId,
    store: Store,
):
    """Apply one player action to the room's game.

    Returns:
        The new state and the events the action produced.

    Raises:
        HTTPException 400: If the payload is malformed or the engine rejects it.
        HTTPException 403: If it is not this player's turn.
        HTTPException 404: If the room has no game.
    """
    logger.info(
        "POST /games/%s/actions - player: %s, action: %s",
        room_id,
        player_id,
        request.action_type,
    )
    try:
        action = build_action_from_payload(request.to_action_dict())
    except ValueError as e:
        raise _error(status.HTTP_400_BAD_REQUEST, "INVALID_PAYLOAD", str(e)) from e

    result = await store.apply_action(room_id, action, player_id)
    if not result.success:
        logger.info(
            "Game action rejected for player %s in room %s: %s - %s",
            player_id,
            room_id,
            result.error_code,
            result.error_message,
        )
        error_code = result.error_code or "PROCESSING_ERROR"
        raise _error(
            _status_for(error_code),
            error_code,
            result.error_message or "Failed to process action",
        )

    return GameActionResponse(
        state=result.state,
        events=[event.model_dump(mode="json") for event in result.events],
    )
