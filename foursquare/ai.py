from __future__ import annotations

import logging
import random
from typing import Callable, Literal, Optional

from .game_logic import GameState, PressSlot, legal_actions, reducer
from .rules import PlayerColor
from .search import AIOptions, compute_best_action

logger = logging.getLogger(__name__)

AIMode = Literal["random", "minimax"]


def _choose_random(state: GameState, *, rng: random.Random) -> Optional[PressSlot]:
    actions = legal_actions(state)
    if not actions:
        return None
    return rng.choice(actions)


def choose_action(
    state: GameState,
    *,
    player: PlayerColor,
    mode: AIMode = "random",
    options: Optional[AIOptions] = None,
    rng: Optional[random.Random] = None,
) -> Optional[PressSlot]:
    if state.is_over or state.currentPlayer != player:
        return None
    rng = rng or random.Random()
    if mode == "minimax":
        return compute_best_action(state, player, options or AIOptions(), rng=rng)
    return _choose_random(state, rng=rng)


def ai_take_turn(
    state: GameState,
    *,
    player: PlayerColor = PlayerColor.B,
    mode: AIMode = "random",
    options: Optional[AIOptions] = None,
    rng: Optional[random.Random] = None,
    on_step: Optional[Callable[[PressSlot, GameState], None]] = None,
) -> tuple[GameState, list[PressSlot]]:
    """
    Play the automated player's whole turn:
    - In placement: place, then the mandatory slide.
    - In movement: one slide.
    Returns the resulting state and the actions applied, in order.
    ``on_step(action, next_state)`` is called after every applied action.
    """
    rng = rng or random.Random()
    played: list[PressSlot] = []
    while not state.is_over and state.currentPlayer == player:
        action = choose_action(state, player=player, mode=mode, options=options, rng=rng)
        if action is None:
            logger.warning("%s has no legal action in phase %s", player.value, state.phase.value)
            break
        nxt = reducer(state, action)
        if nxt is state:
            # Shouldn't happen, but don't loop forever.
            logger.error("AI proposed a rejected action %s", action)
            break
        played.append(action)
        if on_step is not None:
            on_step(action, nxt)
        state = nxt
    logger.info("AI (%s, %s) played %s", player.value, mode, played)
    return state, played
