"""Process-wide owner of the single authoritative Session."""

import logging
import threading

from .engine import GuessOutcome, apply_guess
from .session import Session, new_session
from .text import Article

logger = logging.getLogger(__name__)


class SessionStore:
    """Serializes every read-modify-write of the Session behind one lock.

    Reset and article loads replace the Session wholesale, so readers never
    see an article paired with another article's reveal state.
    """

    def __init__(self, article: Article, article_seq: int = 1) -> None:
        self._lock = threading.Lock()
        self._session: Session = new_session(article, article_seq)

    @property
    def article(self) -> Article:
        with self._lock:
            return self._session.article

    @property
    def article_seq(self) -> int:
        with self._lock:
            return self._session.article_seq

    def guess(self, raw: str, player_id: str) -> GuessOutcome:
        with self._lock:
            outcome = apply_guess(self._session, raw, player_id)
            won = self._session.game_won
        logger.debug("[session] player %s guessed %r → %s", player_id, raw, outcome.code)
        if outcome.code == "hit" and won:
            logger.info("[session] Title solved by player %s.", player_id)
        return outcome

    def reset(self) -> None:
        with self._lock:
            current = self._session
            self._session = new_session(current.article, current.article_seq)
        logger.info("[session] Reset (articleSeq=%d).", current.article_seq)

    def load_article(self, article: Article) -> int:
        """Swap in *article*, bump ``articleSeq`` and rebuild. Returns the new seq."""
        with self._lock:
            seq = self._session.article_seq + 1
            self._session = new_session(article, seq)
        logger.info("[session] Loaded article %r (articleSeq=%d).", article.title, seq)
        return seq

    def snapshot(self) -> dict:
        with self._lock:
            return self._session.snapshot()
