from __future__ import annotations

from enum import Enum
from typing import Iterator, Optional, Sequence

from .mapping import (
    GRID_SIZE,
    SLOT_COUNT,
    SQUARE_COUNT,
    global_to_square_slot,
    index_from_row_col,
    index_to_row_col,
    slot_col,
    slot_index_from_row_col,
    slot_row,
)

HOLE_SQUARE_INDEX = 4  # center square starts empty
GLOBAL_SIZE = GRID_SIZE * 2  # 6x6 slot grid

SlotValue = Optional[str]  # None | "R" | "B"
Board = Sequence[Sequence[SlotValue]]


class PlayerColor(str, Enum):
    R = "R"
    B = "B"


def other_player(player: PlayerColor) -> PlayerColor:
    return PlayerColor.B if player == PlayerColor.R else PlayerColor.R


def empty_board() -> tuple[tuple[SlotValue, ...], ...]:
    return tuple((None,) * SLOT_COUNT for _ in range(SQUARE_COUNT))


def slot_at(board: Board, square_index: int, slot_index: int) -> SlotValue:
    if not (0 <= square_index < SQUARE_COUNT):
        raise IndexError(f"squareIndex {square_index} out of bounds")
    if not (0 <= slot_index < SLOT_COUNT):
        raise IndexError(f"slotIndex {slot_index} out of bounds")
    return board[square_index][slot_index]


def global_get(board: Board, r: int, c: int) -> SlotValue:
    sq, sl = global_to_square_slot(r, c)
    return board[sq][sl]


def iter_windows(board: Board) -> Iterator[tuple[SlotValue, SlotValue, SlotValue, SlotValue]]:
    """Yield every 2x2 window of the global 6x6 grid, row-major by top-left corner."""
    for r in range(GLOBAL_SIZE - 1):
        for c in range(GLOBAL_SIZE - 1):
            yield (
                global_get(board, r, c),
                global_get(board, r, c + 1),
                global_get(board, r + 1, c),
                global_get(board, r + 1, c + 1),
            )


def check_winner(board: Board) -> Optional[PlayerColor]:
    # Any 2x2 solid block on the global 6x6, including across square boundaries.
    for a, b, d, e in iter_windows(board):
        if a is not None and a == b == d == e:
            return PlayerColor(a)
    return None


def destinations_for_single_piece(board: Board, from_square: int, from_slot: int) -> list[tuple[int, int]]:
    """
    Where one piece could step on its own: across a square boundary into the
    aligned slot of the orthogonal neighbour, and only if that slot is empty.
    Order: right, left, down, up.
    """
    row, col = index_to_row_col(from_square)
    mr, mc = slot_row(from_slot), slot_col(from_slot)

    candidates: list[tuple[int, int, int, int]] = []
    if mc == 1:
        candidates.append((row, col + 1, mr, 0))
    if mc == 0:
        candidates.append((row, col - 1, mr, 1))
    if mr == 1:
        candidates.append((row + 1, col, 0, mc))
    if mr == 0:
        candidates.append((row - 1, col, 1, mc))

    out: list[tuple[int, int]] = []
    for r, c, to_mr, to_mc in candidates:
        if not (0 <= r < GRID_SIZE and 0 <= c < GRID_SIZE):
            continue
        sq = index_from_row_col(r, c)
        sl = slot_index_from_row_col(to_mr, to_mc)
        if board[sq][sl] is None:
            out.append((sq, sl))
    return out


def player_has_any_move(board: Board, player: PlayerColor) -> bool:
    for sq in range(SQUARE_COUNT):
        for sl in range(SLOT_COUNT):
            if board[sq][sl] != player.value:
                continue
            if destinations_for_single_piece(board, sq, sl):
                return True
    return False
