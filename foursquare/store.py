from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from uuid import uuid4

from .dataset import MoveLogger
from .game_logic import GameState, PressSlot, Restart, new_state, reducer
from .rules import PlayerColor


@dataclass
class PlayerInfo:
    token: str
    color: PlayerColor


@dataclass
class Game:
    id: str
    state: GameState
    red: PlayerInfo
    ai_mode: str = "minimax"
    move_logger: Optional[MoveLogger] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def advance(self, action: PressSlot, nxt: GameState) -> None:
        """Replace the state with ``nxt``, the result of applying ``action``."""
        if self.move_logger is not None:
            self.move_logger.record(self.state, action)
            if nxt.is_over:
                self.move_logger.finish(nxt)
        self.state = nxt

    def reset(self) -> None:
        if self.move_logger is not None:
            self.move_logger.discard()
        self.state = reducer(self.state, Restart())


class InMemoryStore:
    def __init__(self) -> None:
        self._games: dict[str, Game] = {}

    def create_game(
        self,
        *,
        pieces_per_player: int,
        ai_mode: str = "minimax",
        dataset_path: Optional[Path] = None,
    ) -> Game:
        game_id = str(uuid4())
        red_token = str(uuid4())
        state = new_state(pieces_per_player=pieces_per_player)
        move_logger = MoveLogger(path=dataset_path, game_id=game_id) if dataset_path is not None else None
        g = Game(
            id=game_id,
            state=state,
            red=PlayerInfo(token=red_token, color=PlayerColor.R),
            ai_mode=ai_mode,
            move_logger=move_logger,
        )
        self._games[game_id] = g
        return g

    def get_game(self, game_id: str) -> Game:
        g = self._games.get(game_id)
        if g is None:
            raise KeyError("game not found")
        return g

    def resolve_player(self, g: Game, token: str) -> PlayerInfo:
        if token == g.red.token:
            return g.red
        raise PermissionError("invalid player token")


store = InMemoryStore()
