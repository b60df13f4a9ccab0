from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from ..deps import get_scan_session, get_tracker
from ..services.scanner import ScanSession
from ..services.tracker import ReturnsTracker

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
def index_page(
    request: Request,
    tracker: ReturnsTracker = Depends(get_tracker),
    session: ScanSession = Depends(get_scan_session),
):
    context = {
        "configured": tracker.configured,
        "status": tracker.status,
        "summary": tracker.summary(),
        "received": tracker.received,
        "scanner_state": session.state.value,
        "last_code": tracker.last_code,
    }
    return request.app.state.templates.TemplateResponse(request, "index.html", context)
