import logging
from typing import Any, Dict, Optional

from a11yscan.features.scan.errors import InvalidScanStateError, ScanNotFoundError
from a11yscan.features.scan.services.orchestration.factory import build_state_machine
from a11yscan.platform.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    name="a11yscan.features.scan.workers.tasks.run_scan",
    max_retries=0,
)
def run_scan(
    self,
    scan_id: str,
    url: str,
    max_pages: int,
    options: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Run one scan from pending to a terminal state.

    Scan failures are recorded on the scan itself and never retried. A
    redelivered task for a scan that already left `pending` is dropped. A
    storage outage before the scan starts fails the task itself.
    """
    logger.info(f"[{scan_id}] Worker picked up scan of {url} (max {max_pages} pages)")
    state_machine = build_state_machine()

    try:
        record = state_machine.run(scan_id, max_pages, options or {})
    except (ScanNotFoundError, InvalidScanStateError) as e:
        logger.error(f"[{scan_id}] Scan not started: {e}")
        return {"scan_id": scan_id, "status": None, "error": str(e)}

    return {
        "scan_id": scan_id,
        "status": record.status.value,
        "accessibility_score": record.accessibility_score,
    }


def start_scan(scan_id: str, url: str, max_pages: int, options: Optional[Dict[str, Any]] = None) -> None:
    """Enqueue a scan and return without waiting for it."""
    run_scan.delay(scan_id, url, max_pages, options or {})
    logger.info(f"[{scan_id}] Scan queued for {url}")
