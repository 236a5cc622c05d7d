"""
Scan Schemas

Request and response models for the scan API endpoints.
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr

from a11yscan.features.scan.schemas.results import IssueCounts, PageResult


class ScanStartRequest(BaseModel):
    """Request to start a free scan."""
    url: str
    email: EmailStr
    send_copy_to_admin: bool = False
    admin_email: Optional[EmailStr] = None

    class Config:
        json_schema_extra = {
            "example": {
                "url": "https://example.com",
                "email": "owner@example.com",
                "send_copy_to_admin": False
            }
        }


class ScanStartResponse(BaseModel):
    scan_id: str
    status: str
    message: str


class ScanStatusResponse(BaseModel):
    scan_id: str
    url: str
    status: str
    created_at: datetime
    completed_at: Optional[datetime] = None
    pages_scanned: int = 0
    pages_found: int = 0
    issues: Optional[IssueCounts] = None


class ScanDetailResponse(ScanStatusResponse):
    """Status plus scores and report links once the scan has completed."""
    accessibility_score: Optional[int] = None
    deep_scan_triggered: bool = False
    reports: Optional[Dict[str, str]] = None


class ScanResultsResponse(BaseModel):
    scan_id: str
    url: str
    status: str
    created_at: datetime
    results: List[PageResult]
