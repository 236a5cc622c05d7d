from datetime import datetime, timezone
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, status

from a11yscan.features.scan.errors import ScanNotFoundError
from a11yscan.features.scan.schemas.results import ScanRecord, ScanStatus
from a11yscan.features.scan.schemas.scan import (
    ScanDetailResponse,
    ScanResultsResponse,
    ScanStartRequest,
    ScanStartResponse,
    ScanStatusResponse,
)
from a11yscan.features.scan.services.notifications import scan_notifier
from a11yscan.features.scan.services.orchestration.factory import get_notifier, get_scan_store
from a11yscan.features.scan.services.storage.scan_store import ScanStore
from a11yscan.features.scan.workers.tasks import start_scan
from a11yscan.platform.config import settings
from a11yscan.platform.db.base import new_id
from a11yscan.platform.logger import get_logger
from a11yscan.platform.response import api_response
from a11yscan.platform.utils.url_validator import validate_url

logger = get_logger(__name__)

router = APIRouter(prefix="/scan", tags=["scan"])


def get_scan_queue() -> Callable:
    return start_scan


def _load(store: ScanStore, scan_id: str) -> ScanRecord:
    record = store.read(scan_id)
    if record is None:
        raise ScanNotFoundError(scan_id)
    return record


def _status_payload(record: ScanRecord) -> dict:
    return ScanStatusResponse(
        scan_id=record.scan_id,
        url=record.url,
        status=record.status.value,
        created_at=record.created_at,
        completed_at=record.completed_at,
        pages_scanned=record.pages_scanned,
        pages_found=record.pages_found,
        issues=record.issues,
    ).model_dump()


@router.post("", response_model=ScanStartResponse, status_code=status.HTTP_202_ACCEPTED)
def start_free_scan(
    request: ScanStartRequest,
    store: ScanStore = Depends(get_scan_store),
    notifier: scan_notifier.ScanNotifier = Depends(get_notifier),
    enqueue: Callable = Depends(get_scan_queue),
):
    """
    Start a free accessibility scan.

    The scan record is stored as `pending` and the crawl runs in a Celery
    worker; poll `/scan/{scan_id}/status` for progress. Results are emailed
    to the requester when the scan finishes.
    """
    is_valid, url_str, error_message = validate_url(request.url)
    if not is_valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid URL: {error_message}"
        )

    scan_id = new_id()
    record = ScanRecord(
        scan_id=scan_id,
        url=url_str,
        email=request.email,
        status=ScanStatus.pending,
        created_at=datetime.now(timezone.utc),
        deep_scan_threshold=settings.SCAN_DEEP_SCAN_THRESHOLD,
        send_copy_to_admin=request.send_copy_to_admin,
        admin_email=request.admin_email,
    )
    store.create(scan_id, record)
    logger.info(f"[{scan_id}] Scan requested for {url_str} by {request.email}")

    try:
        notifier.notify(
            scan_notifier.CONFIRMATION,
            request.email,
            {
                "url": url_str,
                "scan_id": scan_id,
                "max_pages": settings.SCAN_MAX_PAGES,
                "status_url": f"{settings.APP_PUBLIC_URL.rstrip('/')}/api/v1/scan/{scan_id}/status",
            },
        )
    except Exception as e:
        logger.error(f"[{scan_id}] Failed to send confirmation email: {e}")

    try:
        enqueue(
            scan_id,
            url_str,
            settings.SCAN_MAX_PAGES,
            {
                "send_copy_to_admin": request.send_copy_to_admin,
                "admin_email": request.admin_email,
            },
        )
    except Exception as e:
        logger.error(f"[{scan_id}] Failed to queue scan: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Scan queue is unavailable, please try again later"
        )

    return api_response(
        status_code=status.HTTP_202_ACCEPTED,
        message="Scan started. Results will be emailed when complete.",
        data=ScanStartResponse(
            scan_id=scan_id,
            status=ScanStatus.pending.value,
            message=f"Scanning up to {settings.SCAN_MAX_PAGES} pages of {url_str}",
        ).model_dump(),
    )


@router.get("/{scan_id}/status", response_model=ScanStatusResponse)
def get_scan_status(scan_id: str, store: ScanStore = Depends(get_scan_store)):
    record = _load(store, scan_id)
    return api_response(
        message="Scan status retrieved",
        data=_status_payload(record),
    )


@router.get("/{scan_id}/details", response_model=ScanResultsResponse)
def get_scan_details(scan_id: str, store: ScanStore = Depends(get_scan_store)):
    """Per-page results in the order the pages were tested."""
    record = _load(store, scan_id)
    data = ScanResultsResponse(
        scan_id=record.scan_id,
        url=record.url,
        status=record.status.value,
        created_at=record.created_at,
        results=record.results,
    )
    return api_response(message="Scan results retrieved", data=data.model_dump())


@router.get("/{scan_id}", response_model=ScanDetailResponse)
def get_scan(scan_id: str, store: ScanStore = Depends(get_scan_store)):
    record = _load(store, scan_id)
    completed = record.status == ScanStatus.completed
    data = ScanDetailResponse(
        **_status_payload(record),
        accessibility_score=record.accessibility_score,
        deep_scan_triggered=record.deep_scan_triggered,
        reports=record.report_urls if completed else None,
    )
    return api_response(message="Scan retrieved", data=data.model_dump())
