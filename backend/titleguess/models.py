from typing import Literal

from pydantic import BaseModel


class GuessRequest(BaseModel):
    char: str
    playerId: Literal["1", "2"]


class GuessResponse(BaseModel):
    code: Literal["empty", "multi", "punct", "repeat", "miss", "hit"]
    message: str
    hit: bool
    repeat: bool


class GuessLogEntry(BaseModel):
    char: str
    hit: bool


class Snapshot(BaseModel):
    revealedMask: list[bool]
    missed: list[str]
    players: dict[Literal["1", "2"], list[GuessLogEntry]]
    gameWon: bool
    preWinRevealed: list[bool] | None = None
    articleSeq: int


class ArticleResponse(BaseModel):
    title: str
    body: str


class ResetResponse(BaseModel):
    ok: bool = True


class RegenerateResponse(BaseModel):
    ok: bool
    article: ArticleResponse | None = None   # set when ok
    error: str | None = None                 # set when not ok
