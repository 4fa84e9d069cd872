"""Pytest fixtures for tests."""

import time
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

from netmidi.midi import MidiService, NullRawMidiService
from netmidi.service import NullService


@pytest.fixture
def temp_dir():
    """Create a temporary directory that gets cleaned up."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def wait_until():
    """Poll a condition until it holds or a timeout expires; returns the last result."""

    def _wait_until(condition, timeout: float = 2.0, interval: float = 0.01) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if condition():
                return True
            time.sleep(interval)
        return condition()

    return _wait_until


@pytest.fixture
def null_service():
    """Create a NullService."""
    return NullService("child")


@pytest.fixture
def null_raw_service():
    """Create a raw MIDI service without I/O."""
    return NullRawMidiService()


@pytest.fixture
def midi_service(null_raw_service):
    """Create a MIDI service over a raw MIDI service without I/O, stopped afterwards."""
    service = MidiService(null_raw_service)
    yield service
    service.stop()
