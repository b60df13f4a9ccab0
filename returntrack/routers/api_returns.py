from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response

from ..core.config import AppSettings
from ..core.errors import CameraUnavailable
from ..deps import get_app_settings, get_scan_session, get_tracker
from ..schemas.returns import (
    BarcodeSelection,
    DeleteResult,
    ExpectedItem,
    ImportReport,
    MissingItem,
    ReceivedItem,
    ScannerState,
    ScanRequest,
    ScanResult,
    StatusOut,
)
from ..services.exporter import (
    XLSX_MEDIA_TYPE,
    build_missing_excel,
    build_received_excel,
    missing_filename,
    received_filename,
)
from ..services.importer import UploadedSheet
from ..services.scanner import ScanSession
from ..services.tracker import ReturnsTracker
from ..stores import TABLES

router = APIRouter(prefix="/api/v1/returns", tags=["returns"])


def _scanner_state(tracker: ReturnsTracker, session: ScanSession) -> ScannerState:
    return ScannerState(state=session.state.value, last_code=tracker.last_code)


def _download(content: bytes, filename: str) -> Response:
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    return Response(content=content, media_type=XLSX_MEDIA_TYPE, headers=headers)


def _local_today(settings: AppSettings):
    return datetime.now(ZoneInfo(settings.TZ)).date()


@router.get("/status", response_model=StatusOut)
def api_status(
    tracker: ReturnsTracker = Depends(get_tracker),
    session: ScanSession = Depends(get_scan_session),
):
    summary = tracker.summary()
    return StatusOut(
        configured=tracker.configured,
        backend=tracker.backend,
        status=tracker.status,
        expected=summary.expected,
        received=summary.received,
        missing=summary.missing,
        scanner=_scanner_state(tracker, session),
    )


@router.post("/refresh", response_model=StatusOut)
def api_refresh(
    tracker: ReturnsTracker = Depends(get_tracker),
    session: ScanSession = Depends(get_scan_session),
):
    tracker.refresh()
    return api_status(tracker, session)


@router.get("/expected", response_model=list[ExpectedItem])
def api_expected(tracker: ReturnsTracker = Depends(get_tracker)):
    return tracker.expected


@router.get("/received", response_model=list[ReceivedItem])
def api_received(tracker: ReturnsTracker = Depends(get_tracker)):
    return tracker.received


@router.get("/missing", response_model=list[MissingItem])
def api_missing(tracker: ReturnsTracker = Depends(get_tracker)):
    return tracker.missing()


@router.post("/import", response_model=ImportReport, status_code=201)
def api_import(
    files: list[UploadFile] = File(...),
    tracker: ReturnsTracker = Depends(get_tracker),
):
    sheets = [UploadedSheet(filename=upload.filename or "", content=upload.file.read()) for upload in files]
    return tracker.import_sheets(sheets)


@router.post("/scan", response_model=ScanResult)
def api_scan(payload: ScanRequest, tracker: ReturnsTracker = Depends(get_tracker)):
    item = tracker.record_scan(payload.barcode)
    if item is None:
        return ScanResult(accepted=False)
    return ScanResult(accepted=True, barcode=item.barcode, item=item)


@router.delete("/expected/{barcode}", response_model=DeleteResult)
def api_delete_expected(barcode: str, tracker: ReturnsTracker = Depends(get_tracker)):
    return DeleteResult(table="expected", count=tracker.delete("expected", [barcode]))


@router.delete("/received/{barcode}", response_model=DeleteResult)
def api_delete_received(barcode: str, tracker: ReturnsTracker = Depends(get_tracker)):
    return DeleteResult(table="received", count=tracker.delete("received", [barcode]))


@router.post("/expected/delete", response_model=DeleteResult)
def api_delete_expected_selected(payload: BarcodeSelection, tracker: ReturnsTracker = Depends(get_tracker)):
    return DeleteResult(table="expected", count=tracker.delete("expected", payload.barcodes))


@router.post("/received/delete", response_model=DeleteResult)
def api_delete_received_selected(payload: BarcodeSelection, tracker: ReturnsTracker = Depends(get_tracker)):
    return DeleteResult(table="received", count=tracker.delete("received", payload.barcodes))


@router.delete("/expected", response_model=DeleteResult)
def api_clear_expected(tracker: ReturnsTracker = Depends(get_tracker)):
    tracker.clear(["expected"])
    return DeleteResult(table="expected")


@router.delete("/received", response_model=DeleteResult)
def api_clear_received(tracker: ReturnsTracker = Depends(get_tracker)):
    tracker.clear(["received"])
    return DeleteResult(table="received")


@router.delete("", response_model=DeleteResult)
def api_clear_all(tracker: ReturnsTracker = Depends(get_tracker)):
    tracker.clear(TABLES)
    return DeleteResult(table="all")


@router.get("/export/missing")
def api_export_missing(
    tracker: ReturnsTracker = Depends(get_tracker),
    settings: AppSettings = Depends(get_app_settings),
):
    content = build_missing_excel(tracker.missing(), tz=settings.TZ)
    return _download(content, missing_filename(_local_today(settings)))


@router.get("/export/received")
def api_export_received(
    tracker: ReturnsTracker = Depends(get_tracker),
    settings: AppSettings = Depends(get_app_settings),
):
    content = build_received_excel(tracker.received, tz=settings.TZ)
    return _download(content, received_filename(_local_today(settings)))


@router.get("/scanner", response_model=ScannerState)
async def api_scanner(
    tracker: ReturnsTracker = Depends(get_tracker),
    session: ScanSession = Depends(get_scan_session),
):
    return _scanner_state(tracker, session)


@router.post("/scanner/start", response_model=ScannerState)
async def api_scanner_start(
    tracker: ReturnsTracker = Depends(get_tracker),
    session: ScanSession = Depends(get_scan_session),
):
    try:
        await session.start()
    except CameraUnavailable as exc:
        tracker.status = f"Camera error: {exc.message}"
        raise
    return _scanner_state(tracker, session)


@router.post("/scanner/stop", response_model=ScannerState)
async def api_scanner_stop(
    tracker: ReturnsTracker = Depends(get_tracker),
    session: ScanSession = Depends(get_scan_session),
):
    await session.stop()
    return _scanner_state(tracker, session)
