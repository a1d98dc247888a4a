"""Main entry point for game action processing.

This module provides the primary interface for processing game actions:
- process_action(): Validates and processes any game action
- Dispatches to specialized handlers based on action type
- Returns ProcessResult with new state and events
"""

import logging

logger = logging.getLogger(__name__)

from app.schemas.game_engine import (
    GameSettings,
    GameState,
    PlayerAttributes,
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
from .chains import process_found_chain, process_place_tile
from .economy import (
    process_buy_stocks,
    process_discard_tile,
    process_end_game_vote,
    process_end_turn,
)
from .events import AnyGameEvent, GameStarted, TurnStarted
from .invariants import check_invariants, check_transition
from .merger import process_choose_survivor, process_pay_bonuses, process_stock_decision
from .validation import ProcessResult, validate_action


def process_action(
    state: GameState,
    action: GameAction,
    player_id: str,
) -> ProcessResult:
    """Process a game action and return the result.

    This is the main entry point for all game actions. It:
    1. Validates the action is legal given current state
    2. Dispatches to the appropriate handler
    3. Checks the engine's invariants on the new state
    4. Assigns sequence numbers to events
    5. Returns ProcessResult with new state and events

    The input state is never modified; a rejected action leaves the caller
    holding exactly the snapshot it passed in.

    Args:
        state: Current game state.
        action: The action to process.
        player_id: The player attempting the action.

    Returns:
        ProcessResult containing:
        - success: Whether the action was processed successfully
        - state: The new game state, or the input state if rejected
        - events: List of events that occurred (with seq numbers)
        - error_code/error_message: Error details (if failed)

    Raises:
        InvariantViolationError: If a handler produced an impossible state.

    Example:
        >>> result = process_action(state, PlaceTileAction(tile_id="3C"), player_id)
        >>> if result.success:
        ...     new_state = result.state
        ...     for event in result.events:
        ...         broadcast(event)  # event.seq is set
        ... else:
        ...     send_error(result.error_code, result.error_message)
    """
    action_type = type(action).__name__
    logger.info(
        "Processing action: type=%s, player=%s, phase=%s",
        action_type,
        player_id,
        state.phase.value,
    )
    logger.debug("Action details: %s", action)

    # Validate the action
    validation = validate_action(state, action, player_id)
    if not validation.is_valid:
        logger.warning(
            "Action validation failed: code=%s, message=%s, player=%s, action=%s",
            validation.error_code,
            validation.error_message,
            player_id,
            action_type,
        )
        return ProcessResult.failure(
            validation.error_code or "VALIDATION_ERROR",
            validation.error_message or "Invalid action",
            state=state,
        )

    # Dispatch to appropriate handler
    logger.debug("Dispatching to handler for action type: %s", action_type)

    if isinstance(action, PlaceTileAction):
        result = process_place_tile(state, action.tile_id, player_id)

    elif isinstance(action, FoundChainAction):
        result = process_found_chain(state, action.chain, player_id)

    elif isinstance(action, ChooseSurvivorAction):
        result = process_choose_survivor(state, action.chain, player_id)

    elif isinstance(action, PayBonusesAction):
        result = process_pay_bonuses(state, player_id)

    elif isinstance(action, StockDecisionAction):
        result = process_stock_decision(state, action.decision, player_id)

    elif isinstance(action, BuyStocksAction):
        result = process_buy_stocks(state, action.purchases, player_id)

    elif isinstance(action, EndTurnAction):
        result = process_end_turn(state, player_id)

    elif isinstance(action, DiscardTileAction):
        result = process_discard_tile(state, action.tile_id, player_id)

    elif isinstance(action, EndGameVoteAction):
        result = process_end_game_vote(state, player_id)

    elif isinstance(action, NewGameAction):
        result = process_new_game(state)

    else:
        logger.error("Unknown action type received: %s", action_type)
        return ProcessResult.failure(
            "UNKNOWN_ACTION",
            f"Unknown action type: {type(action).__name__}",
            state=state,
        )

    if not result.success:
        logger.warning(
            "Action processing failed: type=%s, player=%s, error=%s",
            action_type,
            player_id,
            result.error_code,
        )
        return ProcessResult.failure(
            result.error_code or "PROCESSING_ERROR",
            result.error_message or "Failed to process action",
            state=state,
        )

    if result.state is not None:
        check_invariants(result.state)
        if not isinstance(action, NewGameAction):
            check_transition(state, result.state)

        result = _assign_event_sequences(result)
        logger.info(
            "Action processed successfully: type=%s, player=%s, phase=%s, events_generated=%d",
            action_type,
            player_id,
            result.state.phase.value,
            len(result.events),
        )
        logger.debug("Generated events: %s", [type(e).__name__ for e in result.events])

    return result


def _assign_event_sequences(result: ProcessResult) -> ProcessResult:
    """Assign monotonically increasing sequence numbers to events.

    Updates each event's seq field and increments the state's event_seq counter.
    """
    if result.state is None or not result.events:
        return result

    current_seq = result.state.event_seq
    for event in result.events:
        event.seq = current_seq
        current_seq += 1

    # Update state with new sequence counter
    new_state = result.state.model_copy(update={"event_seq": current_seq})

    return ProcessResult.ok(new_state, result.events)


def process_new_game(state: GameState) -> ProcessResult:
    """Deal a fresh game for the same players, in the same seat order.

    Event numbering carries on from the finished game so clients can keep
    one ordered stream per room.
    """
    from app.services.game.start_game import initialize_game

    settings = GameSettings(
        player_attributes=[
            PlayerAttributes(player_id=p.player_id, name=p.name) for p in state.players
        ]
    )
    new_state = initialize_game(settings).model_copy(update={"event_seq": state.event_seq})
    first_player = new_state.current_player
    starting_tile = next(t.id for t in new_state.board.values() if t.placed)

    events: list[AnyGameEvent] = [
        GameStarted(
            player_order=[p.player_id for p in new_state.players],
            first_player_id=first_player.player_id,
            starting_tile=starting_tile,
        ),
        TurnStarted(player_id=first_player.player_id),
    ]
    logger.info("New game started: players=%s", [p.player_id for p in new_state.players])
    return ProcessResult.ok(new_state, events)
