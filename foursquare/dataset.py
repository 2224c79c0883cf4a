from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from .game_logic import GameState, Phase, PressSlot
from .mapping import SLOT_COUNT, SQUARE_COUNT
from .rules import PlayerColor

logger = logging.getLogger(__name__)

PLACE_ACTION_COUNT = SQUARE_COUNT * SLOT_COUNT  # 36
ACTION_SPACE_SIZE = PLACE_ACTION_COUNT + SQUARE_COUNT  # 36 place actions + 9 slide actions
FEATURE_COLUMNS = [
    *(f"board_{i}" for i in range(PLACE_ACTION_COUNT)),
    "current_player_is_b",
    "phase_placement",
    "phase_placement_slide",
    "phase_movement",
    "hole_square_index",
    "blocked_slide_square_index",
]
CSV_HEADER = ["game_id", "move_index", *FEATURE_COLUMNS, "action_id", "result"]


def extract_features(state: GameState) -> list[float]:
    board_features: list[float] = []
    for square in state.board:
        for slot in square:
            if slot == PlayerColor.R.value:
                board_features.append(1.0)
            elif slot == PlayerColor.B.value:
                board_features.append(-1.0)
            else:
                board_features.append(0.0)

    current_player_is_b = 1.0 if state.currentPlayer == PlayerColor.B else 0.0
    phase_placement = 1.0 if state.phase == Phase.placement else 0.0
    phase_placement_slide = 1.0 if state.phase == Phase.placementSlide else 0.0
    phase_movement = 1.0 if state.phase == Phase.movement else 0.0
    hole_square_index = float(state.holeSquareIndex)
    blocked = float(state.lastMovedSquareIndex) if state.lastMovedSquareIndex is not None else -1.0

    return [
        *board_features,
        current_player_is_b,
        phase_placement,
        phase_placement_slide,
        phase_movement,
        hole_square_index,
        blocked,
    ]


def encode_action(state: GameState, action: PressSlot) -> int:
    """Place actions map to 0..35 (square*4 + slot), slides to 36..44."""
    if state.phase == Phase.placement:
        return action.squareIndex * SLOT_COUNT + action.slotIndex
    return PLACE_ACTION_COUNT + action.squareIndex


def decode_action(action_id: int) -> tuple[str, int, int]:
    if not (0 <= action_id < ACTION_SPACE_SIZE):
        raise ValueError(f"action_id {action_id} out of range")
    if action_id < PLACE_ACTION_COUNT:
        return "place", action_id // SLOT_COUNT, action_id % SLOT_COUNT
    return "slide", action_id - PLACE_ACTION_COUNT, 0


def result_label(state: GameState) -> str:
    if state.winner is not None:
        return state.winner.value
    if state.drawReason is not None:
        return "draw"
    return ""


@dataclass
class MoveLogger:
    """
    Buffers one row per applied action and appends them to a CSV file once the
    match result is known. Only reads states; never alters them.
    """

    path: Path
    game_id: str
    _rows: list[list[Union[str, int, float]]] = field(default_factory=list)

    def record(self, state: GameState, action: PressSlot) -> None:
        self._rows.append([self.game_id, len(self._rows), *extract_features(state), encode_action(state, action)])

    def finish(self, final_state: Optional[GameState] = None) -> int:
        """Write buffered rows with the result column; returns how many were written."""
        if not self._rows:
            return 0
        result = result_label(final_state) if final_state is not None else ""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        is_new = not self.path.exists()
        with self.path.open("a", newline="") as handle:
            writer = csv.writer(handle)
            if is_new:
                writer.writerow(CSV_HEADER)
            for row in self._rows:
                writer.writerow([*row, result])
        written = len(self._rows)
        self._rows.clear()
        logger.info("Wrote %d dataset rows for game %s to %s", written, self.game_id, self.path)
        return written

    def discard(self) -> None:
        self._rows.clear()
