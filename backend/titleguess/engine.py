"""Guess classification and win detection against a Session."""

from dataclasses import asdict, dataclass
from typing import Literal

from .session import PLAYER_IDS, Session
from .text import canonical_char, guess_variants, is_punctuation

GuessCode = Literal["empty", "multi", "punct", "repeat", "miss", "hit"]

_MSG_EMPTY = "请输入一个字符"
_MSG_MULTI = "一次只能输入一个字符"
_MSG_PUNCT = "标点/空白无需猜测"
_MSG_REPEAT_HIT = "已经猜过了（命中）"
_MSG_REPEAT_MISS = "已经猜过了（未命中）"


@dataclass
class GuessOutcome:
    code: GuessCode
    message: str
    hit: bool = False
    repeat: bool = False

    def as_dict(self) -> dict:
        return asdict(self)


def _occurs(session: Session, key: str) -> bool:
    return any(
        not is_punctuation(ch) and canonical_char(ch) == key for ch in session.model.chars
    )


def apply_guess(session: Session, raw: str, player_id: str) -> GuessOutcome:
    """Classify one submission and apply its effects to *session*.

    Only a first-time guess of a canonical key mutates state. The caller
    must hold the session lock.
    """
    if player_id not in PLAYER_IDS:
        raise ValueError(f"Unknown player id: {player_id!r}")

    text = (raw or "").strip()
    if not text:
        return GuessOutcome(code="empty", message=_MSG_EMPTY)
    if len(text) > 1:
        return GuessOutcome(code="multi", message=_MSG_MULTI)
    ch = text
    if is_punctuation(ch):
        return GuessOutcome(code="punct", message=_MSG_PUNCT)

    key = canonical_char(ch)
    if key in session.guessed:
        exists = _occurs(session, key)
        return GuessOutcome(
            code="repeat",
            message=_MSG_REPEAT_HIT if exists else _MSG_REPEAT_MISS,
            hit=exists,
            repeat=True,
        )
    session.guessed.add(key)

    variants = guess_variants(ch)
    matched = newly = False
    for i, cc in enumerate(session.model.chars):
        if cc in variants:
            matched = True
            if not session.revealed[i]:
                session.revealed[i] = True
                newly = True

    log = session.players[player_id]
    if not matched:
        session.missed.append(ch)
        log.append({"char": ch, "hit": False})
        return GuessOutcome(code="miss", message=f"未命中：{ch}")

    if not newly:
        # every occurrence was already on screen, e.g. after the full reveal
        return GuessOutcome(code="repeat", message=_MSG_REPEAT_HIT, hit=True, repeat=True)

    log.append({"char": ch, "hit": True})
    detect_win(session)
    return GuessOutcome(code="hit", message=f"命中：{ch}", hit=True)


def detect_win(session: Session) -> bool:
    """Flip the session to won once every title character is revealed.

    Returns True only on the transition itself.
    """
    if session.game_won:
        return False
    if not all(session.revealed[i] for i in session.model.title_indices):
        return False
    session.pre_win_revealed = list(session.revealed)
    session.game_won = True
    session.revealed[:] = [True] * len(session.revealed)
    return True
