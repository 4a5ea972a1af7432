import asyncio
import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import StreamingResponse
from fastapi.staticfiles import StaticFiles

from . import config
from .broadcast import KEEPALIVE_FRAME, RETRY_FRAME, Broadcaster, format_event
from .models import (
    ArticleResponse,
    GuessRequest,
    GuessResponse,
    RegenerateResponse,
    ResetResponse,
    Snapshot,
)
from .provider import ArticleProvider, ArticleProviderError
from .store import SessionStore
from .text import Article

logger = logging.getLogger(__name__)

_CACHE_PATH = Path(__file__).parent.parent / "article_cache.json"
_FALLBACK_PATH = Path(__file__).parent.parent / "article.json"
_STATIC_DIR = Path(__file__).parent.parent / "static"


def _load_article_data() -> dict:
    """Try ARTICLE_PATH → last generated article → bundled fallback."""
    # 1. Explicitly configured file
    if config.ARTICLE_PATH:
        try:
            data = json.loads(Path(config.ARTICLE_PATH).read_text(encoding="utf-8"))
            logger.info("[article] Loaded from %s: %s", config.ARTICLE_PATH, data.get("title"))
            return data
        except (OSError, ValueError) as exc:
            logger.warning("[article] Could not read %s (%s). Trying cache.", config.ARTICLE_PATH, exc)

    # 2. article_cache.json
    if _CACHE_PATH.exists():
        try:
            data = json.loads(_CACHE_PATH.read_text(encoding="utf-8"))
            logger.info("[article] Loaded from cache: %s", data.get("title"))
            return data
        except (OSError, ValueError) as exc:
            logger.warning("[article] Cache read failed (%s). Using fallback.", exc)

    # 3. Bundled article.json
    data = json.loads(_FALLBACK_PATH.read_text(encoding="utf-8"))
    logger.info("[article] Loaded from bundled fallback: %s", data.get("title"))
    return data


def _write_cache(article: Article) -> None:
    try:
        _CACHE_PATH.write_text(
            json.dumps(article.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8"
        )
    except OSError as exc:
        logger.warning("[article] Could not write cache (%s).", exc)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=config.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    article = Article.from_dict(_load_article_data())
    app.state.store = SessionStore(article)
    app.state.broadcaster = Broadcaster(queue_size=config.SSE_QUEUE_SIZE)
    app.state.provider = ArticleProvider(avoid={article.title})
    app.state.regenerate_lock = asyncio.Lock()
    yield


app = FastAPI(lifespan=lifespan)


def _publish(request: Request) -> None:
    state = request.app.state
    state.broadcaster.publish(state.store.snapshot())


# ---------------------------------------------------------------------------
# API routes
# ---------------------------------------------------------------------------


@app.post("/api/guess", response_model=GuessResponse)
async def post_guess(body: GuessRequest, request: Request):
    outcome = request.app.state.store.guess(body.char, body.playerId)
    _publish(request)
    return GuessResponse(**outcome.as_dict())


@app.post("/api/reset", response_model=ResetResponse)
async def post_reset(request: Request):
    request.app.state.store.reset()
    _publish(request)
    return ResetResponse(ok=True)


@app.get("/api/article", response_model=ArticleResponse)
async def get_article(request: Request):
    article = request.app.state.store.article
    return ArticleResponse(title=article.title, body=article.body)


@app.get("/api/state", response_model=Snapshot)
async def get_state(request: Request):
    return request.app.state.store.snapshot()


@app.post("/api/regenerate", response_model=RegenerateResponse)
async def post_regenerate(request: Request):
    """Generate a new article and swap it in; the session is untouched on failure."""
    state = request.app.state
    # one generation at a time; later requests wait their turn
    async with state.regenerate_lock:
        try:
            data = await state.provider.provide()
        except ArticleProviderError as exc:
            logger.warning("[article] Regeneration failed: %s", exc)
            return RegenerateResponse(ok=False, error=str(exc))
        article = Article.from_dict(data)
        state.store.load_article(article)
    _write_cache(article)
    _publish(request)
    return RegenerateResponse(ok=True, article=ArticleResponse(**article.to_dict()))


@app.get("/api/events")
async def get_events(request: Request):
    """Server-Sent Events stream of session snapshots."""
    state = request.app.state
    sub = state.broadcaster.subscribe(state.store.snapshot())

    async def stream():
        try:
            yield RETRY_FRAME
            while not sub.closed:
                if await request.is_disconnected():
                    break
                try:
                    payload = await asyncio.wait_for(sub.get(), timeout=config.SSE_KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield KEEPALIVE_FRAME
                    continue
                yield format_event(payload)
        finally:
            state.broadcaster.unsubscribe(sub)

    return StreamingResponse(
        stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


# Mount static files last so API routes take priority
if _STATIC_DIR.is_dir():
    app.mount("/", StaticFiles(directory=str(_STATIC_DIR), html=True), name="static")
