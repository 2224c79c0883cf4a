"""Move search for the automated player.

Heuristic evaluation plus depth- and deadline-bounded minimax with alpha-beta
pruning, preceded by tactical shortcuts (immediate wins and blocks).

The search never touches the caller's ``GameState``: it copies it once into a
:class:`SearchBoard` and walks the tree with make/undo on that scratch copy.
"""

from __future__ import annotations

import logging
import math
import random
import time
from dataclasses import dataclass, field
from typing import Callable, NamedTuple, Optional

from .game_logic import DRAW_NO_LEGAL_SLIDES, GameState, Phase, PressSlot, legal_actions
from .mapping import SLOT_COUNT, SQUARE_COUNT, index_to_row_col, neighbors, slot_col, slot_row
from .rules import GLOBAL_SIZE, PlayerColor, check_winner, global_get, iter_windows, other_player

logger = logging.getLogger(__name__)

WIN_SCORE = 100_000
THREAT_SCORE = 90_000
# Indexed by how many of a player's own pieces sit in an otherwise open window.
WINDOW_WEIGHTS = (0, 1, 5, 25, 200)

Move = tuple[int, int]  # (squareIndex, slotIndex); slides use slotIndex 0


@dataclass(frozen=True)
class AIOptions:
    max_depth: int = 3
    time_limit_ms: int = 1500
    noise_amplitude: float = 0.0
    top_k_random: int = 1

    def __post_init__(self) -> None:
        if self.max_depth < 1:
            raise ValueError("max_depth must be positive")
        if self.time_limit_ms <= 0:
            raise ValueError("time_limit_ms must be positive")
        if self.noise_amplitude < 0:
            raise ValueError("noise_amplitude must not be negative")


@dataclass
class SearchBudget:
    """Deadline snapshot for one decision, polled at node granularity."""

    deadline: float
    clock: Callable[[], float] = field(default=time.monotonic)
    nodes: int = 0

    @classmethod
    def start(cls, time_limit_ms: float, clock: Optional[Callable[[], float]] = None) -> "SearchBudget":
        clock = clock or time.monotonic
        return cls(deadline=clock() + time_limit_ms / 1000.0, clock=clock)

    def expired(self) -> bool:
        return self.clock() >= self.deadline


class Undo(NamedTuple):
    square: int
    slot: int
    phase: Phase
    player: PlayerColor
    hole: int
    last_moved: Optional[int]
    winner: Optional[PlayerColor]
    draw: Optional[str]


class SearchBoard:
    """
    Mutable scratch copy of a GameState.
    ``play`` assumes a move from ``legal_moves`` and mirrors the reducer exactly;
    ``undo`` rolls it back.
    """

    def __init__(self, state: GameState) -> None:
        self.board: list[list[Optional[str]]] = [list(square) for square in state.board]
        self.phase = state.phase
        self.current = state.currentPlayer
        self.placed = dict(state.placed)
        self.pieces = state.piecesPerPlayer
        self.hole = state.holeSquareIndex
        self.last_moved = state.lastMovedSquareIndex
        self.winner = state.winner
        self.draw = state.drawReason

    @property
    def is_over(self) -> bool:
        return self.winner is not None or self.draw is not None

    def slide_squares(self) -> list[int]:
        return [i for i in neighbors(self.hole) if i != self.last_moved]

    def legal_moves(self) -> list[Move]:
        if self.is_over:
            return []
        if self.phase != Phase.placement:
            return [(sq, 0) for sq in self.slide_squares()]
        if self.placed[self.current] >= self.pieces:
            return []
        out: list[Move] = []
        for sq in range(SQUARE_COUNT):
            if sq == self.hole:
                continue
            for sl in range(SLOT_COUNT):
                if self.board[sq][sl] is None:
                    out.append((sq, sl))
        return out

    def play(self, move: Move) -> Undo:
        sq, sl = move
        undo = Undo(sq, sl, self.phase, self.current, self.hole, self.last_moved, self.winner, self.draw)
        if self.phase == Phase.placement:
            self.board[sq][sl] = self.current.value
            self.placed[self.current] += 1
            if _completes_window(self.board, sq, sl):
                self.winner = self.current
            else:
                self.phase = Phase.placementSlide
            return undo

        h = self.hole
        self.board[h], self.board[sq] = self.board[sq], self.board[h]
        self.hole = sq
        self.last_moved = h
        w = check_winner(self.board)
        if w is not None:
            self.winner = w
            return undo

        if self.phase == Phase.placementSlide and sum(self.placed.values()) < 2 * self.pieces:
            self.phase = Phase.placement
        else:
            self.phase = Phase.movement
        self.current = other_player(self.current)
        if self.phase == Phase.movement and not self.slide_squares():
            self.draw = DRAW_NO_LEGAL_SLIDES
        return undo

    def undo(self, undo: Undo) -> None:
        if undo.phase == Phase.placement:
            self.board[undo.square][undo.slot] = None
            self.placed[undo.player] -= 1
        else:
            h = undo.hole
            self.board[h], self.board[undo.square] = self.board[undo.square], self.board[h]
        self.phase = undo.phase
        self.current = undo.player
        self.hole = undo.hole
        self.last_moved = undo.last_moved
        self.winner = undo.winner
        self.draw = undo.draw


def _completes_window(board: list[list[Optional[str]]], square_index: int, slot_index: int) -> bool:
    # Only the (up to 4) windows containing the newly placed cell can change.
    row, col = index_to_row_col(square_index)
    gr = row * 2 + slot_row(slot_index)
    gc = col * 2 + slot_col(slot_index)
    value = board[square_index][slot_index]
    for r in range(max(0, gr - 1), min(gr, GLOBAL_SIZE - 2) + 1):
        for c in range(max(0, gc - 1), min(gc, GLOBAL_SIZE - 2) + 1):
            if (
                global_get(board, r, c) == value
                and global_get(board, r, c + 1) == value
                and global_get(board, r + 1, c) == value
                and global_get(board, r + 1, c + 1) == value
            ):
                return True
    return False


def immediate_winning_moves(sb: SearchBoard, player: PlayerColor) -> list[Move]:
    """Moves that win on the spot if ``player`` were the one to move."""
    saved = sb.current
    sb.current = player
    wins: list[Move] = []
    try:
        for move in sb.legal_moves():
            undo = sb.play(move)
            if sb.winner == player:
                wins.append(move)
            sb.undo(undo)
    finally:
        sb.current = saved
    return wins


def has_immediate_win(sb: SearchBoard, player: PlayerColor) -> bool:
    saved = sb.current
    sb.current = player
    try:
        for move in sb.legal_moves():
            undo = sb.play(move)
            won = sb.winner == player
            sb.undo(undo)
            if won:
                return True
    finally:
        sb.current = saved
    return False


def window_score(board: list[list[Optional[str]]], perspective: PlayerColor) -> int:
    mine, theirs = perspective.value, other_player(perspective).value
    score = 0
    for cells in iter_windows(board):
        own = cells.count(mine)
        opp = cells.count(theirs)
        if opp == 0:
            score += WINDOW_WEIGHTS[own]
        if own == 0:
            score -= WINDOW_WEIGHTS[opp]
    return score


def evaluate(sb: SearchBoard, perspective: PlayerColor) -> float:
    if sb.winner is not None:
        return WIN_SCORE if sb.winner == perspective else -WIN_SCORE
    if sb.draw is not None:
        return 0

    for side in (perspective, other_player(perspective)):
        if has_immediate_win(sb, side):
            return THREAT_SCORE if side == perspective else -THREAT_SCORE

    return window_score(sb.board, perspective)


def alphabeta(
    sb: SearchBoard,
    depth: int,
    alpha: float,
    beta: float,
    ai_player: PlayerColor,
    budget: SearchBudget,
) -> float:
    budget.nodes += 1
    if depth <= 0 or sb.is_over or budget.expired():
        return evaluate(sb, ai_player)

    moves = sb.legal_moves()
    if not moves:
        return evaluate(sb, ai_player)

    maximizing = sb.current == ai_player
    value = -math.inf if maximizing else math.inf
    searched = False
    for move in moves:
        if searched and budget.expired():
            break
        undo = sb.play(move)
        score = alphabeta(sb, depth - 1, alpha, beta, ai_player, budget)
        sb.undo(undo)
        searched = True
        if maximizing:
            value = max(value, score)
            alpha = max(alpha, value)
        else:
            value = min(value, score)
            beta = min(beta, value)
        if beta <= alpha:
            break
    return value


def _move_of(action: PressSlot) -> Move:
    return action.squareIndex, action.slotIndex


def _opponent_can_win(sb: SearchBoard, ai_player: PlayerColor) -> bool:
    """Whether the opponent gets an immediate win once ``ai_player``'s turn is over."""
    if sb.is_over:
        return sb.winner is not None and sb.winner != ai_player
    if sb.current == ai_player:
        # Still our turn (mandatory slide after a placement): unsafe only if
        # every continuation hands the opponent a win.
        moves = sb.legal_moves()
        if not moves:
            return has_immediate_win(sb, other_player(ai_player))
        for move in moves:
            undo = sb.play(move)
            bad = _opponent_can_win(sb, ai_player)
            sb.undo(undo)
            if not bad:
                return False
        return True
    return has_immediate_win(sb, sb.current)


def _block_move(sb: SearchBoard, actions: list[PressSlot], ai_player: PlayerColor) -> Optional[PressSlot]:
    threats = set(immediate_winning_moves(sb, other_player(ai_player)))
    if not threats:
        return None

    def safe(action: PressSlot) -> bool:
        undo = sb.play(_move_of(action))
        ok = not _opponent_can_win(sb, ai_player)
        sb.undo(undo)
        return ok

    for action in actions:
        if _move_of(action) in threats and safe(action):
            return action
    for action in actions:
        if safe(action):
            return action
    return None


def compute_best_action(
    state: GameState,
    ai_player: PlayerColor,
    options: AIOptions,
    *,
    rng: Optional[random.Random] = None,
    clock: Optional[Callable[[], float]] = None,
) -> Optional[PressSlot]:
    """
    Pick the next action for ``ai_player``.

    Returns None when it is not ``ai_player``'s turn, the game is over, or no
    action is legal. Running out of time never fails the call: the best root
    move found so far is used (or the first legal action if none was scored).
    """
    if state.currentPlayer != ai_player or state.is_over:
        return None
    actions = legal_actions(state)
    if not actions:
        return None

    rng = rng or random.Random()
    budget = SearchBudget.start(options.time_limit_ms, clock)
    sb = SearchBoard(state)

    for action in actions:
        undo = sb.play(_move_of(action))
        won = sb.winner == ai_player
        sb.undo(undo)
        if won:
            logger.debug("%s plays immediate win %s", ai_player.value, action)
            return action

    block = _block_move(sb, actions, ai_player)
    if block is not None:
        logger.debug("%s blocks opponent threat with %s", ai_player.value, block)
        return block

    if state.phase == Phase.placement and state.placed[ai_player] == 0:
        return rng.choice(actions)

    if state.phase == Phase.placement:
        # Place so that the mandatory slide completes a block this same turn.
        for action in actions:
            undo = sb.play(_move_of(action))
            setup = sb.winner is None and sb.current == ai_player and has_immediate_win(sb, ai_player)
            sb.undo(undo)
            if setup:
                return action

    best_action: Optional[PressSlot] = None
    best_score = -math.inf
    scored: list[tuple[PressSlot, float]] = []
    for action in actions:
        if budget.expired():
            break
        undo = sb.play(_move_of(action))
        score = alphabeta(sb, options.max_depth - 1, -math.inf, math.inf, ai_player, budget)
        sb.undo(undo)
        if options.noise_amplitude > 0:
            score += rng.uniform(-options.noise_amplitude, options.noise_amplitude)
        scored.append((action, score))
        if score > best_score:
            best_score = score
            best_action = action

    logger.debug(
        "%s searched %d/%d root moves, %d nodes, best=%s score=%s",
        ai_player.value,
        len(scored),
        len(actions),
        budget.nodes,
        best_action,
        best_score,
    )

    if best_action is None:
        return actions[0]
    top_k = max(1, options.top_k_random)
    if top_k <= 1:
        return best_action
    scored.sort(key=lambda item: item[1], reverse=True)
    return rng.choice(scored[:top_k])[0]
