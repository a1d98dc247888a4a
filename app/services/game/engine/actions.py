"""Game action types - explicit player intents separated from game state."""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from app.schemas.game_engine import MergerStockDecision, StockPurchase


class PlaceTileAction(BaseModel):
    """Player places a tile from their hand."""

    action_type: Literal["place_tile"] = "place_tile"
    tile_id: str = Field(..., description="Tile to place, e.g. '3C'")


class FoundChainAction(BaseModel):
    """Player names the chain formed by their last placement."""

    action_type: Literal["found_chain"] = "found_chain"
    chain: str = Field(..., description="Chain name, e.g. 'tower'")


class ChooseSurvivorAction(BaseModel):
    """Merger maker breaks a size tie between the largest chains."""

    action_type: Literal["choose_survivor"] = "choose_survivor"
    chain: str = Field(..., description="Chain name, e.g. 'tower'")


class PayBonusesAction(BaseModel):
    """Merger maker pays out bonuses for the current defunct chain."""

    action_type: Literal["pay_bonuses"] = "pay_bonuses"


class StockDecisionAction(BaseModel):
    """Shareholder disposes of their defunct-chain shares."""

    action_type: Literal["stock_decision"] = "stock_decision"
    decision: MergerStockDecision


class BuyStocksAction(BaseModel):
    """Player buys shares of active chains."""

    action_type: Literal["buy_stocks"] = "buy_stocks"
    purchases: list[StockPurchase] = Field(default_factory=list)


class EndTurnAction(BaseModel):
    """Player finishes their turn and draws a replacement tile."""

    action_type: Literal["end_turn"] = "end_turn"


class DiscardTileAction(BaseModel):
    """Player trades in a tile when nothing in hand can be placed."""

    action_type: Literal["discard_tile"] = "discard_tile"
    tile_id: str


class EndGameVoteAction(BaseModel):
    """Any player votes to end the game now."""

    action_type: Literal["end_game_vote"] = "end_game_vote"


class NewGameAction(BaseModel):
    """Host restarts the game with the same players."""

    action_type: Literal["new_game"] = "new_game"


# Union type for all game actions
GameAction = Annotated[
    PlaceTileAction
    | FoundChainAction
    | ChooseSurvivorAction
    | PayBonusesAction
    | StockDecisionAction
    | BuyStocksAction
    | EndTurnAction
    | DiscardTileAction
    | EndGameVoteAction
    | NewGameAction,
    Field(discriminator="action_type"),
]

_ACTION_TYPES: dict[str, type[BaseModel]] = {
    "place_tile": PlaceTileAction,
    "found_chain": FoundChainAction,
    "choose_survivor": ChooseSurvivorAction,
    "pay_bonuses": PayBonusesAction,
    "stock_decision": StockDecisionAction,
    "buy_stocks": BuyStocksAction,
    "end_turn": EndTurnAction,
    "discard_tile": DiscardTileAction,
    "end_game_vote": EndGameVoteAction,
    "new_game": NewGameAction,
}


def build_action_from_payload(payload: dict) -> GameAction:
    """Build a typed action from a raw payload dict.

    Args:
        payload: Dict with 'action_type' key and action-specific fields.

    Returns:
        The appropriate GameAction subtype.

    Raises:
        ValueError: If action_type is missing or unknown, or the payload
            does not match the action's fields (pydantic's ValidationError
            is a ValueError).
    """
    action_type = payload.get("action_type")
    action_cls = _ACTION_TYPES.get(action_type)
    if action_cls is None:
        raise ValueError(f"Unknown action type: {action_type}")
    return action_cls.model_validate(payload)
