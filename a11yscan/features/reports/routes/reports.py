from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from a11yscan.features.scan.services.orchestration.factory import get_report_storage
from a11yscan.features.scan.services.reports.storage import REPORT_KINDS, ReportStorage
from a11yscan.features.scan.services.storage.scan_store import is_valid_scan_id

router = APIRouter(prefix="/reports", tags=["Reports"])

MEDIA_TYPES = {
    "pdf": "application/pdf",
    "csv": "text/csv",
}


@router.get("/{scan_id}/{kind}")
def download_report(
    scan_id: str,
    kind: str,
    storage: ReportStorage = Depends(get_report_storage),
):
    """Download the PDF or CSV report of a completed scan."""
    if kind not in REPORT_KINDS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown report type: {kind}"
        )
    if not is_valid_scan_id(scan_id) or not storage.exists(scan_id, kind):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Report not found"
        )

    return FileResponse(
        storage.path_for(scan_id, kind),
        media_type=MEDIA_TYPES[kind],
        filename=f"accessibility-report-{scan_id}.{kind}",
    )
