"""Camera scanning session.

``CameraDetector`` wraps OpenCV capture and pyzbar decoding and exposes the
decoded labels as an async iterator. ``ScanSession`` owns the Idle/Active
lifecycle: it opens the camera, runs one consumer task that feeds every
decoded code to the ingestion callback, and releases the camera on stop.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from typing import AsyncIterator, Awaitable, Callable, Protocol

from ..core.errors import CameraUnavailable, ReturnsError

logger = logging.getLogger(__name__)

# The 1D symbologies printed on carrier return labels.
SYMBOL_NAMES = ("CODE128", "CODE39", "EAN13", "EAN8", "UPCA", "UPCE")


class ScanState(str, enum.Enum):
    IDLE = "idle"
    ACTIVE = "active"


class Detector(Protocol):
    def open(self) -> None: ...

    def codes(self) -> AsyncIterator[str]: ...

    def close(self) -> None: ...


class CameraDetector:
    """Live camera + pyzbar decoder."""

    def __init__(
        self,
        camera_index: int = 0,
        *,
        width: int = 1280,
        height: int = 720,
        interval: float = 0.1,
    ) -> None:
        self.camera_index = camera_index
        self.width = width
        self.height = height
        self.interval = interval
        self._cap = None
        self._cv2 = None
        self._decode = None
        self._symbols: list = []

    def open(self) -> None:
        # Imported here so the service runs on hosts without a camera stack.
        try:
            import cv2
            from pyzbar.pyzbar import ZBarSymbol, decode
        except ImportError as exc:
            raise CameraUnavailable(f"Camera libraries unavailable: {exc}") from exc

        cap = cv2.VideoCapture(self.camera_index)
        if not cap.isOpened():
            cap.release()
            raise CameraUnavailable(f"Camera {self.camera_index} could not be opened")
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self._cv2 = cv2
        self._decode = decode
        self._symbols = [getattr(ZBarSymbol, name) for name in SYMBOL_NAMES]
        self._cap = cap
        logger.info("Camera %s opened", self.camera_index)

    def read_codes(self) -> list[str]:
        """Grab one frame and return every label decoded from it."""

        if self._cap is None:
            raise CameraUnavailable("Camera is not open")
        ok, frame = self._cap.read()
        if not ok or frame is None:
            raise CameraUnavailable("Camera stopped delivering frames")
        gray = self._cv2.cvtColor(frame, self._cv2.COLOR_BGR2GRAY)
        codes: list[str] = []
        for result in self._decode(gray, symbols=self._symbols):
            text = (result.data or b"").decode("utf-8", errors="ignore").strip()
            if text:
                codes.append(text)
        return codes

    async def codes(self) -> AsyncIterator[str]:
        while True:
            for code in await asyncio.to_thread(self.read_codes):
                yield code
            await asyncio.sleep(self.interval)

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Camera %s released", self.camera_index)


class ScanSession:
    """Idle/Active camera session feeding decoded codes to ``on_code``."""

    def __init__(
        self,
        detector_factory: Callable[[], Detector],
        on_code: Callable[[str], Awaitable[object]],
        *,
        debounce: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.detector_factory = detector_factory
        self.on_code = on_code
        self.debounce = debounce
        self.clock = clock
        self.state = ScanState.IDLE
        self.last_error = ""
        self._detector: Detector | None = None
        self._task: asyncio.Task | None = None
        self._recent: dict[str, float] = {}

    @property
    def active(self) -> bool:
        return self.state is ScanState.ACTIVE

    async def start(self) -> None:
        if self.active:
            return
        detector = self.detector_factory()
        try:
            await asyncio.to_thread(detector.open)
        except CameraUnavailable as exc:
            self.last_error = exc.message
            logger.warning("Scan session could not start: %s", exc.message)
            raise
        self._detector = detector
        self._recent.clear()
        self.last_error = ""
        self.state = ScanState.ACTIVE
        self._task = asyncio.create_task(self._consume(detector))
        logger.info("scan.session_started")

    async def stop(self) -> None:
        if not self.active:
            return
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._release()
        logger.info("scan.session_stopped")

    def _release(self) -> None:
        detector, self._detector = self._detector, None
        if detector is not None:
            detector.close()
        self.state = ScanState.IDLE

    def _is_repeat(self, code: str) -> bool:
        now = self.clock()
        seen = self._recent.get(code)
        # Only reads inside the debounce window matter.
        self._recent = {
            other: at for other, at in self._recent.items() if now - at < self.debounce
        }
        self._recent[code] = now
        return seen is not None and now - seen < self.debounce

    async def _consume(self, detector: Detector) -> None:
        try:
            async for code in detector.codes():
                if self._is_repeat(code):
                    continue
                try:
                    await self.on_code(code)
                except ReturnsError as exc:
                    logger.error("Scan ingestion failed for %s: %s", code, exc.message)
        except CameraUnavailable as exc:
            self.last_error = exc.message
            logger.error("Scan session lost the camera: %s", exc.message)
            self._task = None
            self._release()
        except Exception as exc:
            self.last_error = str(exc) or type(exc).__name__
            logger.exception("Scan session stopped on a detector failure")
            self._task = None
            self._release()
