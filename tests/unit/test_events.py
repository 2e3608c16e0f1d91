"""Unit tests for audio.events – bus, subscription, pactl subscribe parsing."""

import asyncio
import logging
import os

import pytest
from audio.events import (
    SERVER_DEFAULTS_CHANGED,
    BusEvent,
    ChangeSubscriber,
    EventBus,
    PactlEventMonitor,
    parse_subscribe_line,
)


@pytest.mark.unit
class TestEventBus:
    def test_delivers_matching_category_only(self, bus):
        seen = []
        bus.subscribe(SERVER_DEFAULTS_CHANGED, seen.append)
        assert bus.publish(BusEvent("sink", "new", 3)) == 0
        assert bus.publish(BusEvent(SERVER_DEFAULTS_CHANGED)) == 1
        assert seen == [BusEvent(SERVER_DEFAULTS_CHANGED)]

    def test_unsubscribe_is_idempotent(self, bus):
        seen = []
        token = bus.subscribe(SERVER_DEFAULTS_CHANGED, seen.append)
        bus.unsubscribe(token)
        bus.unsubscribe(token)
        bus.publish(BusEvent(SERVER_DEFAULTS_CHANGED))
        assert seen == []

    def test_failing_handler_does_not_block_others(self, bus, caplog):
        seen = []

        def broken(event):
            raise ValueError("bad handler")

        bus.subscribe(SERVER_DEFAULTS_CHANGED, broken)
        bus.subscribe(SERVER_DEFAULTS_CHANGED, seen.append)
        with caplog.at_level(logging.ERROR):
            assert bus.publish(BusEvent(SERVER_DEFAULTS_CHANGED)) == 2
        assert len(seen) == 1
        assert "Handler for server event failed" in caplog.text


@pytest.mark.unit
class TestChangeSubscriber:
    def test_register_forwards_server_events(self, bus):
        seen = []
        sub = ChangeSubscriber(bus, seen.append)
        token = sub.register()
        assert sub.registered
        assert sub.register() == token
        bus.publish(BusEvent(SERVER_DEFAULTS_CHANGED, "change", 0))
        assert len(seen) == 1

    def test_unregister(self, bus):
        seen = []
        sub = ChangeSubscriber(bus, seen.append)
        sub.register()
        sub.unregister()
        sub.unregister()
        assert not sub.registered
        assert bus.publish(BusEvent(SERVER_DEFAULTS_CHANGED)) == 0

    def test_unregister_without_register(self, bus):
        sub = ChangeSubscriber(bus, lambda event: None)
        sub.unregister()
        assert not sub.registered


@pytest.mark.unit
class TestParseSubscribeLine:
    def test_server_change(self):
        assert parse_subscribe_line("Event 'change' on server #4294967295\n") == BusEvent(
            "server", "change", 4294967295
        )

    def test_sink_input(self):
        event = parse_subscribe_line("Event 'new' on sink-input #42")
        assert event.category == "sink-input"
        assert event.action == "new"
        assert event.index == 42

    def test_no_index(self):
        assert parse_subscribe_line("Event 'change' on server") == BusEvent("server", "change", None)

    def test_garbage(self):
        assert parse_subscribe_line("") is None
        assert parse_subscribe_line("Connection failure: Connection refused") is None


@pytest.fixture
def fake_pactl(tmp_path):
    """Script standing in for `pactl subscribe`: prints a few events and exits."""
    script = tmp_path / "pactl"
    script.write_text(
        "#!/bin/sh\n"
        "echo \"Event 'new' on sink #3\"\n"
        "echo \"Event 'change' on server #4294967295\"\n"
        "echo \"Event 'change' on server #4294967295\"\n"
    )
    os.chmod(script, 0o755)
    return str(script)


@pytest.mark.asyncio
async def test_monitor_publishes_server_events(bus, fake_pactl):
    seen = []
    bus.subscribe(SERVER_DEFAULTS_CHANGED, seen.append)
    monitor = PactlEventMonitor(bus, pactl=fake_pactl)
    assert await monitor.start()
    await asyncio.wait_for(monitor._task, timeout=5)
    assert not monitor.running
    await monitor.stop()
    assert seen == [BusEvent("server", "change", 4294967295)] * 2


@pytest.mark.asyncio
async def test_monitor_missing_binary(bus, tmp_path):
    monitor = PactlEventMonitor(bus, pactl=str(tmp_path / "no-such-pactl"))
    assert await monitor.start() is False
    assert not monitor.running
    await monitor.stop()
