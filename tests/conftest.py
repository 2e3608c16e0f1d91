"""Pytest fixtures and config."""

import pytest
from audio.devices import DeviceKind
from audio.events import EventBus


class FakeScheduler:
    """Manual-clock Scheduler: timers fire only when advance() passes their deadline."""

    def __init__(self):
        self.now = 0.0
        self.timers: dict[int, tuple[float, object]] = {}
        self.scheduled = 0
        self.cancelled = 0
        self._next = 0

    def schedule_once(self, delay, callback):
        self._next += 1
        self.timers[self._next] = (self.now + delay, callback)
        self.scheduled += 1
        return self._next

    def cancel(self, handle):
        if self.timers.pop(handle, None) is not None:
            self.cancelled += 1

    def advance(self, seconds):
        self.now += seconds
        due = sorted((when, h) for h, (when, _) in self.timers.items() if when <= self.now)
        for _, handle in due:
            _, callback = self.timers.pop(handle)
            callback()


class FakeLookup:
    """In-memory device registry implementing DefaultDeviceLookup."""

    def __init__(self):
        self.devices = {DeviceKind.SINK: set(), DeviceKind.SOURCE: set()}
        self.defaults: dict[DeviceKind, str] = {}
        self.manual: set[DeviceKind] = set()
        self.set_calls: list[tuple[str, DeviceKind]] = []
        self.set_fails = False
        self.on_set = None

    def has_manual_default(self, kind):
        return kind in self.manual

    def resolve(self, name, kind):
        return name in self.devices[kind]

    def set_default(self, name, kind):
        self.set_calls.append((name, kind))
        self.defaults[kind] = name
        if self.on_set is not None:
            self.on_set(name, kind)
        return not self.set_fails

    def current_default_name(self, kind):
        return self.defaults.get(kind)


@pytest.fixture
def state_dir(tmp_path):
    """Temporary per-user state directory."""
    return tmp_path / "state"


@pytest.fixture
def fake_scheduler():
    return FakeScheduler()


@pytest.fixture
def fake_lookup():
    lookup = FakeLookup()
    lookup.devices[DeviceKind.SINK] = {"alsa_output.pci-0000_00_1f.3.analog-stereo", "bluez_sink.AA_BB"}
    lookup.devices[DeviceKind.SOURCE] = {"alsa_input.pci-0000_00_1f.3.analog-stereo"}
    return lookup


@pytest.fixture
def bus():
    return EventBus()
