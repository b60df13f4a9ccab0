from __future__ import annotations

from fastapi import Request

from .core.config import AppSettings
from .services.scanner import ScanSession
from .services.tracker import ReturnsTracker


def get_tracker(request: Request) -> ReturnsTracker:
    return request.app.state.tracker


def get_scan_session(request: Request) -> ScanSession:
    return request.app.state.scan_session


def get_app_settings(request: Request) -> AppSettings:
    return request.app.state.settings
