from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Union

from .mapping import SLOT_COUNT, SQUARE_COUNT, neighbors
from .rules import (
    HOLE_SQUARE_INDEX,
    PlayerColor,
    SlotValue,
    check_winner,
    empty_board,
    other_player,
)

DEFAULT_PIECES_PER_PLAYER = 4
# 8 playable squares x 4 slots, shared by both players.
MAX_PIECES_PER_PLAYER = (SQUARE_COUNT - 1) * SLOT_COUNT // 2

DRAW_NO_LEGAL_SLIDES = "noLegalSlides"


class Phase(str, Enum):
    placement = "placement"
    placementSlide = "placementSlide"
    movement = "movement"


SLIDE_PHASES = (Phase.placementSlide, Phase.movement)


@dataclass(frozen=True)
class GameState:
    board: tuple[tuple[SlotValue, ...], ...]  # 9 tuples of 4: None | "R" | "B"
    phase: Phase
    currentPlayer: PlayerColor
    placed: Mapping[PlayerColor, int]
    piecesPerPlayer: int
    holeSquareIndex: int
    # No-take-back rule: the square slid last now sits at the previous hole index,
    # which is stored here and may not be slid on the next slide.
    lastMovedSquareIndex: Optional[int] = None
    selectedSquareIndex: Optional[int] = None
    winner: Optional[PlayerColor] = None
    drawReason: Optional[str] = None
    # Squares that may slide into the hole; derived from the hole when omitted,
    # empty once terminal.
    legalSlides: Optional[tuple[int, ...]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "placed", MappingProxyType(dict(self.placed)))
        if self.is_over:
            slides: tuple[int, ...] = ()
        elif self.legalSlides is None:
            slides = tuple(legal_slide_squares(self))
        else:
            slides = tuple(self.legalSlides)
        object.__setattr__(self, "legalSlides", slides)

    @property
    def is_over(self) -> bool:
        return self.winner is not None or self.drawReason is not None


@dataclass(frozen=True)
class Restart:
    pass


@dataclass(frozen=True)
class PressSlot:
    squareIndex: int
    slotIndex: int = 0


GameAction = Union[Restart, PressSlot]


class IllegalMove(ValueError):
    pass


def new_state(*, pieces_per_player: int = DEFAULT_PIECES_PER_PLAYER) -> GameState:
    if not (1 <= pieces_per_player <= MAX_PIECES_PER_PLAYER):
        raise ValueError(f"piecesPerPlayer must be between 1 and {MAX_PIECES_PER_PLAYER}")

    return GameState(
        board=empty_board(),
        phase=Phase.placement,
        currentPlayer=PlayerColor.R,
        placed={PlayerColor.R: 0, PlayerColor.B: 0},
        piecesPerPlayer=pieces_per_player,
        holeSquareIndex=HOLE_SQUARE_INDEX,
    )


def remaining_pieces(state: GameState, player: PlayerColor) -> int:
    return state.piecesPerPlayer - state.placed[player]


def legal_slide_squares(state: GameState) -> list[int]:
    """Squares that can slide into the hole: adjacent to it, minus the one slid last."""
    return [i for i in neighbors(state.holeSquareIndex) if i != state.lastMovedSquareIndex]


def legal_place_targets(state: GameState) -> list[tuple[int, int]]:
    out: list[tuple[int, int]] = []
    if state.placed[state.currentPlayer] >= state.piecesPerPlayer:
        return out
    for sq in range(SQUARE_COUNT):
        if sq == state.holeSquareIndex:
            continue
        for sl in range(SLOT_COUNT):
            if state.board[sq][sl] is None:
                out.append((sq, sl))
    return out


def legal_actions(state: GameState) -> list[PressSlot]:
    """Every action the reducer accepts right now (slides carry slotIndex 0)."""
    if state.is_over:
        return []
    if state.phase == Phase.placement:
        return [PressSlot(sq, sl) for sq, sl in legal_place_targets(state)]
    return [PressSlot(sq) for sq in legal_slide_squares(state)]


def _place(state: GameState, square_index: int, slot_index: int) -> GameState:
    if square_index == state.holeSquareIndex:
        return state
    if state.placed[state.currentPlayer] >= state.piecesPerPlayer:
        return state
    if state.board[square_index][slot_index] is not None:
        return state

    square = list(state.board[square_index])
    square[slot_index] = state.currentPlayer.value
    board = state.board[:square_index] + (tuple(square),) + state.board[square_index + 1 :]
    placed = {**state.placed, state.currentPlayer: state.placed[state.currentPlayer] + 1}

    w = check_winner(board)
    if w is not None:
        return replace(state, board=board, placed=placed, selectedSquareIndex=None, winner=w, legalSlides=())

    # After a placement, same player must slide.
    return replace(state, board=board, placed=placed, phase=Phase.placementSlide, selectedSquareIndex=None)


def _slide(state: GameState, square_index: int) -> GameState:
    if square_index == state.holeSquareIndex:
        return state
    if square_index == state.lastMovedSquareIndex:
        return state
    if square_index not in neighbors(state.holeSquareIndex):
        return state

    # Slide into hole = swap the 4-slot blocks; pieces move with the square.
    h = state.holeSquareIndex
    board = list(state.board)
    board[h], board[square_index] = board[square_index], board[h]
    moved = replace(
        state,
        board=tuple(board),
        holeSquareIndex=square_index,
        lastMovedSquareIndex=h,
        selectedSquareIndex=None,
        legalSlides=None,
    )

    w = check_winner(moved.board)
    if w is not None:
        return replace(moved, winner=w, legalSlides=())

    if state.phase == Phase.placementSlide:
        all_placed = sum(state.placed.values()) >= 2 * state.piecesPerPlayer
        phase = Phase.movement if all_placed else Phase.placement
    else:
        phase = Phase.movement

    nxt = replace(moved, currentPlayer=other_player(state.currentPlayer), phase=phase)
    if phase == Phase.movement and not nxt.legalSlides:
        return replace(nxt, drawReason=DRAW_NO_LEGAL_SLIDES)
    return nxt


def reducer(state: GameState, action: GameAction) -> GameState:
    """
    Apply one action and return the next state.
    Rejected actions return the very same object, never raise.
    """
    if isinstance(action, Restart):
        return new_state(pieces_per_player=state.piecesPerPlayer)
    if not isinstance(action, PressSlot):
        return state
    if state.is_over:
        return state
    if not (0 <= action.squareIndex < SQUARE_COUNT and 0 <= action.slotIndex < SLOT_COUNT):
        return state

    if state.phase == Phase.placement:
        return _place(state, action.squareIndex, action.slotIndex)
    return _slide(state, action.squareIndex)


def _check_turn(state: GameState, player: PlayerColor) -> None:
    if state.is_over:
        raise IllegalMove("game already finished")
    if player != state.currentPlayer:
        raise IllegalMove("not your turn")


def _assert_square_index(i: int) -> None:
    if not (0 <= i < SQUARE_COUNT):
        raise IllegalMove("squareIndex out of bounds")


def _assert_slot_index(i: int) -> None:
    if not (0 <= i < SLOT_COUNT):
        raise IllegalMove("slotIndex out of bounds")


def apply_place(state: GameState, *, squareIndex: int, slotIndex: int, player: PlayerColor) -> GameState:
    _check_turn(state, player)
    if state.phase != Phase.placement:
        raise IllegalMove("cannot place in this phase")

    _assert_square_index(squareIndex)
    _assert_slot_index(slotIndex)
    if squareIndex == state.holeSquareIndex:
        raise IllegalMove("cannot place into the hole square")
    if state.placed[player] >= state.piecesPerPlayer:
        raise IllegalMove("no pieces remaining to place")
    if state.board[squareIndex][slotIndex] is not None:
        raise IllegalMove("slot is occupied")

    return reducer(state, PressSlot(squareIndex, slotIndex))


def apply_slide(state: GameState, *, squareIndex: int, player: PlayerColor) -> GameState:
    _check_turn(state, player)
    if state.phase not in SLIDE_PHASES:
        raise IllegalMove("cannot slide in this phase")

    _assert_square_index(squareIndex)
    if squareIndex == state.holeSquareIndex:
        raise IllegalMove("cannot slide the hole")
    if squareIndex == state.lastMovedSquareIndex:
        raise IllegalMove("cannot slide the same square as the previous slide")
    if squareIndex not in neighbors(state.holeSquareIndex):
        raise IllegalMove("square is not adjacent to the hole")

    return reducer(state, PressSlot(squareIndex))


def to_public_json(state: GameState) -> dict:
    return {
        "board": [list(square) for square in state.board],
        "phase": state.phase.value,
        "currentPlayer": state.currentPlayer.value,
        "placed": {k.value: v for k, v in state.placed.items()},
        "piecesPerPlayer": state.piecesPerPlayer,
        "holeSquareIndex": state.holeSquareIndex,
        # Left/right/up/down neighbours of the hole, minus the square slid last.
        "legalSlides": list(state.legalSlides),
        "lastMovedSquareIndex": state.lastMovedSquareIndex,
        "winner": state.winner.value if state.winner is not None else None,
        "drawReason": state.drawReason,
    }
