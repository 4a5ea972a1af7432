from dataclasses import dataclass, field

from .text import Article, TextModel, build_model

PLAYER_IDS: tuple[str, ...] = ("1", "2")


@dataclass
class Session:
    """Mutable game state for one article.

    ``revealed`` only ever flips False → True; a fresh Session is built on
    reset or article change instead of clearing it in place.
    """

    article: Article
    article_seq: int
    model: TextModel
    revealed: list[bool]
    guessed: set[str] = field(default_factory=set)
    missed: list[str] = field(default_factory=list)
    players: dict[str, list[dict]] = field(
        default_factory=lambda: {pid: [] for pid in PLAYER_IDS}
    )
    game_won: bool = False
    pre_win_revealed: list[bool] | None = None

    def snapshot(self) -> dict:
        return {
            "revealedMask": list(self.revealed),
            "missed": list(self.missed),
            "players": {pid: [dict(e) for e in log] for pid, log in self.players.items()},
            "gameWon": self.game_won,
            "preWinRevealed": (
                list(self.pre_win_revealed) if self.pre_win_revealed is not None else None
            ),
            "articleSeq": self.article_seq,
        }


def new_session(article: Article, article_seq: int) -> Session:
    model = build_model(article)
    return Session(
        article=article,
        article_seq=article_seq,
        model=model,
        revealed=list(model.initial_mask),
    )
