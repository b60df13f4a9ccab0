"""Scan session lifecycle with a fake detector."""

import asyncio
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from returntrack.core.errors import CameraUnavailable, StoreError
from returntrack.services.scanner import ScanSession, ScanState


class FakeDetector:
    def __init__(self, codes, *, fail_open=False, lose_camera=False):
        self._codes = list(codes)
        self.fail_open = fail_open
        self.lose_camera = lose_camera
        self.opened = False
        self.closed = False

    def open(self):
        if self.fail_open:
            raise CameraUnavailable("Camera 0 could not be opened")
        self.opened = True

    async def codes(self):
        for code in self._codes:
            yield code
        if self.lose_camera:
            raise CameraUnavailable("Camera stopped delivering frames")
        await asyncio.Event().wait()

    def close(self):
        self.closed = True


class Clock:
    def __init__(self):
        self.value = 0.0

    def __call__(self):
        return self.value


async def _drain():
    for _ in range(5):
        await asyncio.sleep(0)


def test_start_feeds_codes_and_stop_releases_camera():
    detector = FakeDetector(["123", "456"])
    seen = []

    async def on_code(code):
        seen.append(code)

    async def scenario():
        session = ScanSession(lambda: detector, on_code)
        await session.start()
        assert session.state is ScanState.ACTIVE
        await _drain()
        await session.stop()
        return session

    session = asyncio.run(scenario())
    assert seen == ["123", "456"]
    assert session.state is ScanState.IDLE
    assert detector.closed


def test_repeated_reads_within_debounce_are_dropped():
    clock = Clock()
    detector = FakeDetector(["123", "123", "123"])
    seen = []

    async def on_code(code):
        seen.append(code)
        clock.value += 1.0

    async def scenario():
        session = ScanSession(lambda: detector, on_code, debounce=1.5, clock=clock)
        await session.start()
        await _drain()
        await session.stop()

    asyncio.run(scenario())
    assert seen == ["123"]


def test_camera_failure_keeps_session_idle():
    async def on_code(code):
        raise AssertionError("no codes expected")

    async def scenario():
        session = ScanSession(lambda: FakeDetector([], fail_open=True), on_code)
        with pytest.raises(CameraUnavailable):
            await session.start()
        return session

    session = asyncio.run(scenario())
    assert session.state is ScanState.IDLE
    assert session.last_error == "Camera 0 could not be opened"


def test_lost_camera_returns_to_idle():
    detector = FakeDetector(["1"], lose_camera=True)

    async def on_code(code):
        return None

    async def scenario():
        session = ScanSession(lambda: detector, on_code)
        await session.start()
        await _drain()
        return session

    session = asyncio.run(scenario())
    assert session.state is ScanState.IDLE
    assert detector.closed
    assert "stopped delivering" in session.last_error


def test_ingestion_errors_do_not_stop_the_session():
    detector = FakeDetector(["1", "2"])
    seen = []

    async def on_code(code):
        seen.append(code)
        if code == "1":
            raise StoreError("Backend unreachable")

    async def scenario():
        session = ScanSession(lambda: detector, on_code)
        await session.start()
        await _drain()
        active = session.active
        await session.stop()
        return active

    assert asyncio.run(scenario()) is True
    assert seen == ["1", "2"]


class CrashingDetector(FakeDetector):
    async def codes(self):
        for code in self._codes:
            yield code
        raise RuntimeError("frame conversion failed")


def test_unexpected_detector_error_releases_camera():
    detector = CrashingDetector(["1"])
    seen = []

    async def on_code(code):
        seen.append(code)

    async def scenario():
        session = ScanSession(lambda: detector, on_code)
        await session.start()
        await _drain()
        return session

    session = asyncio.run(scenario())
    assert seen == ["1"]
    assert session.state is ScanState.IDLE
    assert detector.closed
    assert session.last_error == "frame conversion failed"


def test_old_reads_are_forgotten_after_the_debounce_window():
    clock = Clock()
    session = ScanSession(lambda: FakeDetector([]), lambda code: None, debounce=2.0, clock=clock)
    for code in ("1", "2", "3"):
        assert session._is_repeat(code) is False
    clock.value = 5.0
    assert session._is_repeat("4") is False
    assert list(session._recent) == ["4"]
    assert session._is_repeat("4") is True
