#!/usr/bin/env python3
"""
Tests for the change broadcast: EventBus fan-out, the asyncio bridge used by
client sessions and the Server-Sent Events body.
"""

import asyncio
import threading

import pytest

from deku_tracker.core import ChangeSubscription, EventBus
from deku_tracker.models import ChangeEvent, ChangeType
from ui.server import update_stream


def make_event(entity_id="t1", change_type=ChangeType.TASK_ADDED):
    return ChangeEvent(change_type, entity_id)


class TestEventBus:
    """Synchronous publish/subscribe."""

    def setup_method(self):
        self.bus = EventBus(history_max_size=3)

    def test_every_subscriber_receives_event(self):
        received_a, received_b = [], []
        self.bus.subscribe(received_a.append, subscriber_name="a")
        self.bus.subscribe(received_b.append, subscriber_name="b")

        delivered = self.bus.publish(make_event())

        assert delivered == 2
        assert len(received_a) == 1
        assert len(received_b) == 1

    def test_unsubscribe(self):
        received = []
        sub_id = self.bus.subscribe(received.append)

        assert self.bus.unsubscribe(sub_id) is True
        assert self.bus.unsubscribe(sub_id) is False
        self.bus.publish(make_event())

        assert received == []
        assert self.bus.subscriber_count == 0

    def test_filter(self):
        received = []
        self.bus.subscribe(
            received.append,
            filter_func=lambda e: e.change_type == ChangeType.TASK_DELETED,
        )

        self.bus.publish(make_event())
        self.bus.publish(make_event(change_type=ChangeType.TASK_DELETED))

        assert [e.change_type for e in received] == [ChangeType.TASK_DELETED]

    def test_failing_handler_is_isolated(self):
        received = []

        def broken(event):
            raise ValueError("handler bug")

        self.bus.subscribe(broken, subscriber_name="broken")
        self.bus.subscribe(received.append, subscriber_name="ok")

        assert self.bus.publish(make_event()) == 1
        assert len(received) == 1

        stats = self.bus.get_stats()
        assert stats["events_published"] == 1
        assert stats["handlers_executed"] == 1
        assert stats["handlers_failed"] == 1
        assert stats["subscribers"] == 2
        assert self.bus.event_history[-1].handlers_failed == ["broken"]

    def test_history_is_bounded(self):
        for n in range(5):
            self.bus.publish(make_event(f"t{n}"))

        assert [r.event.entity_id for r in self.bus.event_history] == ["t2", "t3", "t4"]

    def test_history_disabled(self):
        bus = EventBus(enable_history=False)
        bus.publish(make_event())
        assert len(bus.event_history) == 0

    def test_event_json(self):
        event = ChangeEvent(ChangeType.SUBTASK_ADDED, "s1", "t1")
        data = event.to_dict()
        assert data["type"] == "subtask_added"
        assert data["id"] == "s1"
        assert data["parentId"] == "t1"
        assert data["timestamp"].endswith("+00:00")


class TestChangeSubscription:
    """Bridging published events onto an asyncio queue."""

    def setup_method(self):
        self.bus = EventBus()

    def test_receives_events_in_order(self):
        async def scenario():
            async with ChangeSubscription(self.bus, max_queue=8) as sub:
                self.bus.publish(make_event("a"))
                self.bus.publish(make_event("b"))
                first = await sub.get(timeout=1)
                second = await sub.get(timeout=1)
                return first.entity_id, second.entity_id

        assert asyncio.run(scenario()) == ("a", "b")
        assert self.bus.subscriber_count == 0

    def test_publish_from_other_thread(self):
        async def scenario():
            sub = ChangeSubscription(self.bus)
            worker = threading.Thread(target=self.bus.publish, args=(make_event("remote"),))
            worker.start()
            event = await sub.get(timeout=2)
            worker.join()
            sub.close()
            return event.entity_id

        assert asyncio.run(scenario()) == "remote"

    def test_full_queue_drops(self):
        async def scenario():
            sub = ChangeSubscription(self.bus, max_queue=2)
            for n in range(5):
                self.bus.publish(make_event(f"t{n}"))
            await asyncio.sleep(0)
            return sub

        sub = asyncio.run(scenario())
        assert sub.pending == 2
        assert sub.dropped == 3

    def test_timeout(self):
        async def scenario():
            async with ChangeSubscription(self.bus) as sub:
                await sub.get(timeout=0.01)

        with pytest.raises(asyncio.TimeoutError):
            asyncio.run(scenario())

    def test_close_is_idempotent(self):
        async def scenario():
            sub = ChangeSubscription(self.bus)
            assert self.bus.subscriber_count == 1
            sub.close()
            sub.close()
            self.bus.publish(make_event())
            await asyncio.sleep(0)
            return sub

        sub = asyncio.run(scenario())
        assert sub.closed is True
        assert sub.pending == 0
        assert self.bus.subscriber_count == 0

    def test_closed_loop_releases_subscription(self):
        async def scenario():
            return ChangeSubscription(self.bus, subscriber_name="stale")

        sub = asyncio.run(scenario())
        self.bus.publish(make_event())

        assert sub.closed is True
        assert self.bus.subscriber_count == 0


class TestUpdateStream:
    """Server-Sent Events body produced for /api/updates."""

    def setup_method(self):
        self.bus = EventBus()

    def test_frames(self):
        async def scenario():
            sub = ChangeSubscription(self.bus)
            checks = iter([False, True])

            async def is_disconnected():
                return next(checks)

            stream = update_stream(is_disconnected, sub, retry_ms=500, heartbeat=5)
            frames = [await stream.__anext__()]
            self.bus.publish(make_event())
            async for frame in stream:
                frames.append(frame)
            return frames, sub

        frames, sub = asyncio.run(scenario())

        assert frames[0] == "retry: 500\n\n"
        assert frames[1] == "data: update\n\n"
        assert sub.closed is True
        assert self.bus.subscriber_count == 0

    def test_heartbeat_when_idle(self):
        async def scenario():
            sub = ChangeSubscription(self.bus)
            checks = iter([False, True])

            async def is_disconnected():
                return next(checks)

            return [frame async for frame in update_stream(is_disconnected, sub, heartbeat=0.01)]

        frames = asyncio.run(scenario())

        assert frames == ["retry: 1000\n\n", ": keep-alive\n\n"]
