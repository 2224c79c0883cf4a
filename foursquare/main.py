from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from .ai import ai_take_turn
from .config import get_settings
from .game_logic import IllegalMove, PressSlot, apply_place, apply_slide, to_public_json
from .rules import PlayerColor
from .schemas import CreateGameIn, CreateGameOut, GameStateOut, MoveIn, RestartIn
from .store import Game, store

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

AI_COLOR = PlayerColor.B

app = FastAPI(title="Arba BaRibua (Four in a Square) API")


@app.get("/health")
def health() -> dict:
    return {"ok": True}


@app.post("/games", response_model=CreateGameOut)
def create_game(body: CreateGameIn) -> CreateGameOut:
    s = get_settings()
    g = store.create_game(
        pieces_per_player=body.piecesPerPlayer or s.pieces_per_player,
        ai_mode=body.aiMode or s.ai_mode,
        dataset_path=s.dataset_path,
    )
    logger.info("Created game %s (piecesPerPlayer=%d, aiMode=%s)", g.id, g.state.piecesPerPlayer, g.ai_mode)
    return CreateGameOut(
        gameId=g.id,
        playerToken=g.red.token,
        aiMode=g.ai_mode,
        state=to_public_json(g.state),
    )


@app.get("/games/{game_id}", response_model=GameStateOut)
def get_game(game_id: str) -> GameStateOut:
    try:
        g = store.get_game(game_id)
        return GameStateOut(state=to_public_json(g.state))
    except KeyError:
        raise HTTPException(status_code=404, detail={"error": "game not found"})


def _apply_human_move(g: Game, body: MoveIn, player: PlayerColor) -> None:
    if body.action == "place":
        assert body.squareIndex is not None and body.slotIndex is not None
        placed = apply_place(g.state, squareIndex=body.squareIndex, slotIndex=body.slotIndex, player=player)
        # Optional: the required slide may come in the same request. Both steps are
        # validated before either is committed.
        slid = None
        if body.slideSquareIndex is not None and not placed.is_over:
            slid = apply_slide(placed, squareIndex=body.slideSquareIndex, player=player)
        g.advance(PressSlot(body.squareIndex, body.slotIndex), placed)
        if slid is not None:
            g.advance(PressSlot(body.slideSquareIndex), slid)
        return

    if body.toHoleSquareIndex is not None:
        assert body.fromSquareIndex is not None
        if body.toHoleSquareIndex != g.state.holeSquareIndex:
            raise IllegalMove("toHoleSquareIndex must equal the current holeSquareIndex")
        square_index = body.fromSquareIndex
    else:
        assert body.squareIndex is not None
        square_index = body.squareIndex
    nxt = apply_slide(g.state, squareIndex=square_index, player=player)
    g.advance(PressSlot(square_index), nxt)


def _play_ai_turn(g: Game) -> None:
    s = get_settings()
    ai_take_turn(
        g.state,
        player=AI_COLOR,
        mode=g.ai_mode,  # type: ignore[arg-type]
        options=s.ai_options,
        on_step=g.advance,
    )


@app.post("/games/{game_id}/move", response_model=GameStateOut)
async def move(game_id: str, body: MoveIn) -> GameStateOut:
    try:
        g = store.get_game(game_id)
    except KeyError:
        raise HTTPException(status_code=404, detail={"error": "game not found"})

    async with g.lock:
        try:
            p = store.resolve_player(g, body.playerToken)
        except PermissionError:
            raise HTTPException(status_code=401, detail={"error": "invalid playerToken"})

        try:
            _apply_human_move(g, body, p.color)
        except IllegalMove as e:
            logger.info("Rejected %s in game %s: %s", body.action, game_id, e)
            return JSONResponse(status_code=400, content={"error": f"Invalid move: {str(e)}"})

        # After a human slide, it may become AI's turn; AI should play automatically.
        if not g.state.is_over and g.state.currentPlayer == AI_COLOR:
            _play_ai_turn(g)

        return GameStateOut(state=to_public_json(g.state))


@app.post("/games/{game_id}/restart", response_model=GameStateOut)
async def restart(game_id: str, body: RestartIn) -> GameStateOut:
    try:
        g = store.get_game(game_id)
    except KeyError:
        raise HTTPException(status_code=404, detail={"error": "game not found"})

    async with g.lock:
        try:
            _ = store.resolve_player(g, body.playerToken)
        except PermissionError:
            raise HTTPException(status_code=401, detail={"error": "invalid playerToken"})

        g.reset()
        return GameStateOut(state=to_public_json(g.state))
