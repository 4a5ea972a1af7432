"""Tests for the SSE stream and regeneration routes, driven without a server.

The event stream never ends on its own, so these call the route functions
directly with a minimal request object and step through the body iterator.
"""

import asyncio
import json
from types import SimpleNamespace

import pytest

from titleguess import main
from titleguess.broadcast import Broadcaster
from titleguess.store import SessionStore
from titleguess.text import Article

BODY = "第一段。\n\n第二段。"


class FakeRequest:
    def __init__(self, state):
        self.app = SimpleNamespace(state=state)
        self.disconnected = False

    async def is_disconnected(self):
        return self.disconnected


def _state(provider=None):
    return SimpleNamespace(
        store=SessionStore(Article(title="AB", body="ab.")),
        broadcaster=Broadcaster(),
        provider=provider,
        regenerate_lock=asyncio.Lock(),
    )


def _data(frame):
    assert frame.startswith("data: ")
    return json.loads(frame[len("data: "):])


# ── /api/events ───────────────────────────────────────────────────────────

class TestEventStream:
    def test_frames_then_disconnect(self, monkeypatch):
        monkeypatch.setattr(main.config, "SSE_KEEPALIVE_SECONDS", 5)
        state = _state()
        request = FakeRequest(state)

        async def run():
            response = await main.get_events(request)
            assert response.media_type == "text/event-stream"
            assert response.headers["cache-control"] == "no-cache"
            frames = response.body_iterator
            retry = await frames.__anext__()
            initial = await frames.__anext__()
            assert len(state.broadcaster) == 1

            state.store.guess("a", "2")
            state.broadcaster.publish(state.store.snapshot())
            update = await frames.__anext__()

            request.disconnected = True
            with pytest.raises(StopAsyncIteration):
                await frames.__anext__()
            return retry, initial, update

        retry, initial, update = asyncio.run(run())
        assert retry == "retry: 2000\n\n"
        assert _data(initial) == SessionStore(Article(title="AB", body="ab.")).snapshot()
        assert _data(update)["players"]["2"] == [{"char": "a", "hit": True}]
        assert len(state.broadcaster) == 0

    def test_keepalive_when_idle(self, monkeypatch):
        monkeypatch.setattr(main.config, "SSE_KEEPALIVE_SECONDS", 0.01)
        state = _state()

        async def run():
            response = await main.get_events(FakeRequest(state))
            frames = response.body_iterator
            await frames.__anext__()
            await frames.__anext__()
            keepalive = await frames.__anext__()
            await frames.aclose()
            return keepalive

        assert asyncio.run(run()) == ": keepalive\n\n"
        assert len(state.broadcaster) == 0

    def test_closing_stream_unsubscribes(self, monkeypatch):
        monkeypatch.setattr(main.config, "SSE_KEEPALIVE_SECONDS", 5)
        state = _state()

        async def run():
            response = await main.get_events(FakeRequest(state))
            frames = response.body_iterator
            await frames.__anext__()
            assert len(state.broadcaster) == 1
            await frames.aclose()

        asyncio.run(run())
        assert len(state.broadcaster) == 0
        assert state.broadcaster.publish(state.store.snapshot()) == 0


# ── /api/regenerate ───────────────────────────────────────────────────────

class SlowProvider:
    """Records how many provide() calls overlap."""

    def __init__(self, titles):
        self._titles = iter(titles)
        self.active = 0
        self.max_active = 0

    async def provide(self):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(0.02)
            return {"title": next(self._titles), "body": BODY}
        finally:
            self.active -= 1


class TestConcurrentRegenerate:
    def test_requests_are_serialized(self, tmp_path, monkeypatch):
        monkeypatch.setattr(main, "_CACHE_PATH", tmp_path / "article_cache.json")
        provider = SlowProvider(["长城", "故宫"])
        state = _state(provider)
        request = FakeRequest(state)

        async def run():
            return await asyncio.gather(
                main.post_regenerate(request), main.post_regenerate(request)
            )

        first, second = asyncio.run(run())
        assert first.ok and second.ok
        assert provider.max_active == 1
        assert [first.article.title, second.article.title] == ["长城", "故宫"]
        assert state.store.article_seq == 3
        assert state.store.article.title == "故宫"
