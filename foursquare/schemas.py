from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from .game_logic import MAX_PIECES_PER_PLAYER


class CreateGameIn(BaseModel):
    # Omitted fields fall back to the server settings.
    piecesPerPlayer: Optional[int] = Field(default=None, ge=1, le=MAX_PIECES_PER_PLAYER)
    aiMode: Optional[Literal["random", "minimax"]] = Field(default=None)


class CreateGameOut(BaseModel):
    gameId: str
    playerToken: str
    state: dict
    aiMode: Literal["random", "minimax"]


class GameStateOut(BaseModel):
    state: dict


class MoveIn(BaseModel):
    action: Literal["place", "slide"]
    # place: squareIndex = destination square
    # slide: squareIndex is optional (legacy formats). New client uses fromSquareIndex + toHoleSquareIndex.
    squareIndex: Optional[int] = Field(default=None, ge=0, le=8)
    slotIndex: Optional[int] = Field(default=None, ge=0, le=3)
    slideSquareIndex: Optional[int] = Field(default=None, ge=0, le=8)
    fromSquareIndex: Optional[int] = Field(default=None, ge=0, le=8)
    toHoleSquareIndex: Optional[int] = Field(default=None, ge=0, le=8)
    playerToken: str

    @model_validator(mode="after")
    def check_payload(self) -> "MoveIn":
        if self.action == "place":
            if self.squareIndex is None:
                raise ValueError("squareIndex is required for place")
            if self.slotIndex is None:
                raise ValueError("slotIndex is required for place")
            # slideSquareIndex is optional: if provided, server will place then slide in same request
            if self.fromSquareIndex is not None or self.toHoleSquareIndex is not None:
                raise ValueError("fromSquareIndex/toHoleSquareIndex must be omitted for place")
        else:
            if self.slotIndex is not None:
                raise ValueError("slotIndex must be omitted for slide")
            if self.slideSquareIndex is not None:
                raise ValueError("slideSquareIndex must be omitted for slide")
            # Supported slide payloads:
            # A) fromSquareIndex + toHoleSquareIndex (squareIndex omitted)
            # B) legacy: squareIndex = square being slid into hole
            if self.toHoleSquareIndex is not None and self.fromSquareIndex is None:
                raise ValueError("fromSquareIndex is required when toHoleSquareIndex is provided")
            if self.fromSquareIndex is not None and self.toHoleSquareIndex is None:
                raise ValueError("toHoleSquareIndex is required when fromSquareIndex is provided")
            if self.fromSquareIndex is None and self.squareIndex is None:
                raise ValueError("squareIndex is required for slide or provide fromSquareIndex+toHoleSquareIndex")
        return self


class RestartIn(BaseModel):
    playerToken: str
