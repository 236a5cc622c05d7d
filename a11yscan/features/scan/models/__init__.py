"""
Scan models package.
"""
from a11yscan.features.scan.models.scan_job import ScanJob, ScanJobStatus
from a11yscan.features.scan.models.scan_page import ScanPage

__all__ = ["ScanJob", "ScanJobStatus", "ScanPage"]
