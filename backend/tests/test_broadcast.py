"""Tests for snapshot fan-out to SSE subscribers."""

import asyncio
import json

from titleguess.broadcast import Broadcaster, encode_snapshot, format_event


def _snap(seq):
    return {"articleSeq": seq, "gameWon": False}


def _drain(sub):
    items = []
    while not sub.queue.empty():
        items.append(json.loads(sub.queue.get_nowait()))
    return items


class TestFormatEvent:
    def test_data_frame(self):
        assert format_event('{"a":1}') == 'data: {"a":1}\n\n'

    def test_multiline_payload(self):
        assert format_event("x\ny") == "data: x\ndata: y\n\n"

    def test_encode_keeps_cjk(self):
        assert encode_snapshot({"missed": ["桃"]}) == '{"missed":["桃"]}'


class TestSubscribe:
    def test_primed_with_snapshot(self):
        hub = Broadcaster()
        sub = hub.subscribe(_snap(1))
        assert _drain(sub) == [_snap(1)]
        assert len(hub) == 1

    def test_get_returns_initial_snapshot(self):
        hub = Broadcaster()
        sub = hub.subscribe(_snap(3))
        payload = asyncio.run(sub.get())
        assert json.loads(payload) == _snap(3)


class TestPublish:
    def test_fan_out_to_all(self):
        hub = Broadcaster()
        subs = [hub.subscribe(_snap(1)) for _ in range(3)]
        assert hub.publish(_snap(2)) == 3
        for sub in subs:
            assert _drain(sub) == [_snap(1), _snap(2)]

    def test_unsubscribed_receive_nothing(self):
        hub = Broadcaster()
        keep = hub.subscribe(_snap(1))
        gone = hub.subscribe(_snap(1))
        hub.unsubscribe(gone)
        _drain(gone)
        assert hub.publish(_snap(2)) == 1
        assert _drain(gone) == []
        assert _drain(keep)[-1] == _snap(2)

    def test_unsubscribe_twice(self):
        hub = Broadcaster()
        sub = hub.subscribe(_snap(1))
        hub.unsubscribe(sub)
        hub.unsubscribe(sub)
        assert len(hub) == 0

    def test_closed_subscriber_pruned(self):
        hub = Broadcaster()
        sub = hub.subscribe(_snap(1))
        sub.closed = True
        assert hub.publish(_snap(2)) == 0
        assert len(hub) == 0

    def test_slow_subscriber_keeps_latest(self):
        hub = Broadcaster(queue_size=2)
        slow = hub.subscribe(_snap(1))
        fast = hub.subscribe(_snap(1))
        _drain(fast)
        for seq in range(2, 6):
            hub.publish(_snap(seq))
            assert _drain(fast) == [_snap(seq)]
        assert [s["articleSeq"] for s in _drain(slow)] == [4, 5]

    def test_failing_subscriber_dropped(self):
        hub = Broadcaster()
        good = hub.subscribe(_snap(1))
        bad = hub.subscribe(_snap(1))

        def broken(payload):
            raise RuntimeError("connection reset")

        bad.offer = broken
        assert hub.publish(_snap(2)) == 1
        assert len(hub) == 1
        assert _drain(good)[-1] == _snap(2)
