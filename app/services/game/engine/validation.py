"""Validation layer for game actions and ProcessResult pattern.

Separates validation from processing logic:
- validate_action() checks if an action is valid given current state
- ProcessResult replaces exceptions for control flow
"""

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

from app.schemas.game_engine import (
    MERGER_PHASES,
    GamePhase,
    GameState,
    RejectionCode,
    parse_chain_name,
)

from .actions import (
    BuyStocksAction,
    ChooseSurvivorAction,
    DiscardTileAction,
    EndGameVoteAction,
    EndTurnAction,
    FoundChainAction,
    GameAction,
    NewGameAction,
    PayBonusesAction,
    PlaceTileAction,
    StockDecisionAction,
)
from .board import is_valid_tile_id
from .events import AnyGameEvent

# Phase each turn-bound action must be taken in
_REQUIRED_PHASE: dict[type, GamePhase] = {
    PlaceTileAction: GamePhase.PLACE_TILE,
    DiscardTileAction: GamePhase.PLACE_TILE,
    FoundChainAction: GamePhase.FOUND_CHAIN,
    BuyStocksAction: GamePhase.BUY_STOCK,
    ChooseSurvivorAction: GamePhase.MERGER_CHOOSE_SURVIVOR,
    PayBonusesAction: GamePhase.MERGER_PAY_BONUSES,
    StockDecisionAction: GamePhase.MERGER_HANDLE_STOCK,
}

_MERGER_ACTIONS = (ChooseSurvivorAction, PayBonusesAction, StockDecisionAction)


@dataclass
class ProcessResult:
    """Result of processing a game action.

    Replaces exceptions for control flow, providing explicit success/failure
    with error codes suitable for client localization.
    """

    state: GameState | None = None
    events: list[AnyGameEvent] = field(default_factory=list)
    success: bool = True
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(
        cls,
        state: GameState,
        events: list[AnyGameEvent] | None = None,
    ) -> "ProcessResult":
        """Create a successful result with new state and events."""
        return cls(
            state=state,
            events=events or [],
            success=True,
        )

    @classmethod
    def failure(
        cls, code: str, message: str, state: GameState | None = None
    ) -> "ProcessResult":
        """Create a failure result with error details.

        state is the unchanged snapshot the action was rejected against.
        """
        return cls(
            state=state,
            events=[],
            success=False,
            error_code=code,
            error_message=message,
        )


@dataclass
class ValidationResult:
    """Result of validating an action before processing."""

    is_valid: bool = True
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        """Create a successful validation result."""
        return cls(is_valid=True)

    @classmethod
    def error(cls, code: str, message: str) -> "ValidationResult":
        """Create a validation failure with error details."""
        return cls(
            is_valid=False,
            error_code=code,
            error_message=message,
        )


def validate_action(
    state: GameState,
    action: GameAction,
    player_id: str,
) -> ValidationResult:
    """Validate an action before processing.

    Checks:
    - The game is not over (except for starting a new one)
    - The player belongs to this game
    - It's the acting player's turn (the merger cursor during disposal)
    - The current phase accepts this action
    - Payload shape: tile ids on the board and in hand, known chain names

    Rule checks that need the board (placement legality, funds, bank
    shares) are done by the handlers themselves.

    Args:
        state: Current game state.
        action: The action to validate.
        player_id: The player attempting the action.

    Returns:
        ValidationResult indicating success or failure with error details.
    """
    action_type = type(action).__name__
    logger.debug(
        "Validating action: type=%s, player=%s, phase=%s",
        action_type,
        player_id,
        state.phase.value,
    )

    player_index = state.player_index(player_id)
    if player_index is None:
        logger.warning("Validation failed: UNKNOWN_PLAYER, player=%s", player_id)
        return ValidationResult.error(
            RejectionCode.UNKNOWN_PLAYER,
            "You are not a player in this game",
        )

    # Only the host can restart, and they can do so at any point
    if isinstance(action, NewGameAction):
        if player_index != 0:
            logger.warning("Validation failed: NOT_HOST, player=%s", player_id)
            return ValidationResult.error(
                RejectionCode.NOT_HOST,
                "Only the host can start a new game",
            )
        return ValidationResult.ok()

    if state.phase == GamePhase.GAME_OVER:
        logger.warning("Validation failed: GAME_FINISHED")
        return ValidationResult.error(
            RejectionCode.GAME_FINISHED,
            "Game has already finished",
        )

    # Votes are not turn-bound
    if isinstance(action, EndGameVoteAction):
        return ValidationResult.ok()

    acting_index = state.current_player_index
    if isinstance(action, StockDecisionAction) and state.merger is not None:
        acting_index = state.merger.current_player_index

    if acting_index != player_index:
        logger.warning(
            "Validation failed: NOT_YOUR_TURN, current=%s, attempted=%s",
            state.players[acting_index].player_id,
            player_id,
        )
        return ValidationResult.error(
            RejectionCode.NOT_YOUR_TURN,
            "It's not your turn",
        )

    phase_error = _validate_phase(state, action)
    if phase_error is not None:
        return phase_error

    return _validate_payload(state, action, player_index)


def _validate_phase(state: GameState, action: GameAction) -> ValidationResult | None:
    if isinstance(action, EndTurnAction):
        # PLACE_TILE is allowed for a pass; the handler checks the hand
        if state.phase not in (GamePhase.BUY_STOCK, GamePhase.PLACE_TILE):
            logger.warning(
                "Validation failed: INVALID_ACTION (end_turn), phase=%s",
                state.phase.value,
            )
            return ValidationResult.error(
                RejectionCode.INVALID_ACTION,
                "Cannot end turn - waiting for a different action",
            )
        return None

    required = _REQUIRED_PHASE.get(type(action))
    if required is None or state.phase == required:
        if isinstance(action, _MERGER_ACTIONS) and required != GamePhase.MERGER_CHOOSE_SURVIVOR:
            if state.merger is None:
                logger.error("Merger phase %s without merger state", state.phase.value)
                return ValidationResult.error(
                    RejectionCode.INVALID_MERGER_STATE,
                    "No merger in progress",
                )
        return None

    # Merger actions out of step get the merger-specific code
    code = RejectionCode.INVALID_ACTION
    if isinstance(action, _MERGER_ACTIONS) or state.phase in MERGER_PHASES:
        code = RejectionCode.INVALID_MERGER_STATE
    logger.warning(
        "Validation failed: %s (%s), expected=%s, got=%s",
        code.value,
        action.action_type,
        required.value,
        state.phase.value,
    )
    return ValidationResult.error(
        code,
        f"Cannot {action.action_type.replace('_', ' ')} - waiting for a different action",
    )


def _validate_payload(
    state: GameState, action: GameAction, player_index: int
) -> ValidationResult:
    player = state.players[player_index]

    if isinstance(action, (PlaceTileAction, DiscardTileAction)):
        if not is_valid_tile_id(action.tile_id):
            logger.warning("Validation failed: INVALID_COORDINATE, tile=%r", action.tile_id)
            return ValidationResult.error(
                RejectionCode.INVALID_COORDINATE,
                f"'{action.tile_id}' is not a board coordinate",
            )
        if action.tile_id not in player.tiles:
            logger.warning(
                "Validation failed: TILE_NOT_IN_HAND, tile=%s, hand=%s",
                action.tile_id,
                player.tiles,
            )
            return ValidationResult.error(
                RejectionCode.TILE_NOT_IN_HAND,
                f"Tile {action.tile_id} is not in your hand",
            )

    elif isinstance(action, (FoundChainAction, ChooseSurvivorAction)):
        if parse_chain_name(action.chain) is None:
            logger.warning("Validation failed: UNKNOWN_CHAIN, chain=%r", action.chain)
            return ValidationResult.error(
                RejectionCode.UNKNOWN_CHAIN,
                f"'{action.chain}' is not a hotel chain",
            )

    elif isinstance(action, BuyStocksAction):
        for purchase in action.purchases:
            if parse_chain_name(purchase.chain) is None:
                logger.warning("Validation failed: UNKNOWN_CHAIN, chain=%r", purchase.chain)
                return ValidationResult.error(
                    RejectionCode.UNKNOWN_CHAIN,
                    f"'{purchase.chain}' is not a hotel chain",
                )

    logger.debug("Action validated successfully: type=%s", type(action).__name__)
    return ValidationResult.ok()
