"""Application factory and top-level wiring for the return tracker.

This module brings together configuration, the record store, the operator
session, the camera scan session, HTML templates, API routers and error
handling. ``create_app`` is the only entry point: ``main.py`` calls it with
the environment settings, tests call it with an in-memory store.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import AppSettings, get_settings
from .core.errors import (
    ReturnsError,
    http_exception_handler,
    returns_error_handler,
    validation_exception_handler,
)
from .core.jinja import get_templates
from .middlewares import RequestIdMiddleware
from .services.scanner import CameraDetector, Detector, ScanSession
from .services.tracker import ReturnsTracker
from .stores import ReturnsStore, build_store

logger = logging.getLogger(__name__)


def _camera_factory(settings: AppSettings) -> Callable[[], Detector]:
    def factory() -> Detector:
        return CameraDetector(
            settings.CAMERA_INDEX,
            width=settings.CAMERA_WIDTH,
            height=settings.CAMERA_HEIGHT,
            interval=settings.SCAN_INTERVAL_SECONDS,
        )

    return factory


def create_app(
    settings: AppSettings | None = None,
    *,
    store: ReturnsStore | None = None,
    detector_factory: Callable[[], Detector] | None = None,
) -> FastAPI:
    """Build a fully wired application.

    ``store`` overrides the backend chosen from ``settings``; without either
    the app still starts and every data endpoint answers 503.
    """

    settings = settings or get_settings()
    app = FastAPI(title=settings.APP_NAME)

    # ---------- Operator session ----------
    if store is None:
        store = build_store(settings)
    tracker = ReturnsTracker(
        store,
        missing_settings=settings.missing_credentials(),
        fallback_scan=settings.IMPORT_FALLBACK_SCAN,
        min_token_length=settings.BARCODE_TOKEN_MIN_LENGTH,
    )
    if tracker.configured:
        try:
            tracker.refresh()
        except ReturnsError as exc:
            # The page still renders; the status line carries the error.
            logger.error("Initial load failed: %s", exc.message)
    else:
        logger.warning(tracker.status)

    async def ingest(code: str) -> None:
        await asyncio.to_thread(tracker.record_scan, code)

    scan_session = ScanSession(
        detector_factory or _camera_factory(settings),
        ingest,
        debounce=settings.SCAN_DEBOUNCE_SECONDS,
    )

    app.state.settings = settings
    app.state.tracker = tracker
    app.state.scan_session = scan_session
    app.state.templates = get_templates(settings)

    # ---------- Static, middleware, errors ----------
    app.mount("/static", StaticFiles(directory=str(settings.static_dir)), name="static")
    app.add_middleware(RequestIdMiddleware)
    app.add_exception_handler(ReturnsError, returns_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # ---------- Routers ----------
    from .routers import api_returns as api_returns_router
    from .routers import ui as ui_router

    app.include_router(ui_router.router)
    app.include_router(api_returns_router.router)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await scan_session.stop()
        tracker.close()

    return app


__all__ = ["create_app"]
