"""Board coordinates, tile identity and orthogonal adjacency.

Tiles are named by row then column, e.g. "3C" (row 3, column C).
Rows run 1-9 and columns A-L, giving a 9x12 board of 108 tiles.
"""

import re

from app.schemas.game_engine import ChainName, Tile

ROWS = range(1, 10)
COLUMNS = "ABCDEFGHIJKL"

_TILE_ID_PATTERN = re.compile(r"([1-9])([A-L])")


class InvalidCoordinateError(ValueError):
    """Raised when a tile id does not name a cell on the board."""

    def __init__(self, tile_id: object):
        self.tile_id = tile_id
        super().__init__(f"Invalid tile id: {tile_id!r}")


def parse_tile_id(tile_id: str) -> tuple[int, str]:
    """Split a tile id into (row, column).

    Raises:
        InvalidCoordinateError: If the row is outside 1-9 or the column
            outside A-L.
    """
    if not isinstance(tile_id, str):
        raise InvalidCoordinateError(tile_id)
    match = _TILE_ID_PATTERN.fullmatch(tile_id)
    if match is None:
        raise InvalidCoordinateError(tile_id)
    return int(match.group(1)), match.group(2)


def is_valid_tile_id(tile_id: str) -> bool:
    try:
        parse_tile_id(tile_id)
    except InvalidCoordinateError:
        return False
    return True


def make_tile_id(row: int, column: str) -> str:
    return f"{row}{column}"


def all_tile_ids() -> list[str]:
    """All 108 tile ids in row-major order."""
    return [make_tile_id(row, column) for row in ROWS for column in COLUMNS]


def adjacent_tiles(tile_id: str) -> list[str]:
    """Orthogonal neighbours of a tile, clipped at the board edges."""
    row, column = parse_tile_id(tile_id)
    col_index = COLUMNS.index(column)

    adjacent: list[str] = []
    if row > ROWS.start:
        adjacent.append(make_tile_id(row - 1, column))
    if row < ROWS.stop - 1:
        adjacent.append(make_tile_id(row + 1, column))
    if col_index > 0:
        adjacent.append(make_tile_id(row, COLUMNS[col_index - 1]))
    if col_index < len(COLUMNS) - 1:
        adjacent.append(make_tile_id(row, COLUMNS[col_index + 1]))
    return adjacent


def assign_chain(board: dict[str, Tile], tile_ids: list[str], chain: ChainName) -> dict[str, Tile]:
    """A copy of the board with the given tiles marked as part of chain."""
    new_board = dict(board)
    for tile_id in tile_ids:
        new_board[tile_id] = new_board[tile_id].model_copy(update={"chain": chain})
    return new_board
