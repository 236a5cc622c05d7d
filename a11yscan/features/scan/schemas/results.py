"""
Scan Result Schemas

Data exchanged between the crawler, scorer, report renderers and the scan store.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

PAGE_STATUS_OK = 200
PAGE_STATUS_FAILED = 0  # no usable response from the page


class ScanStatus(str, Enum):
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"


class IssueCounts(BaseModel):
    """Violation counts bucketed by severity. Used per page and per scan."""
    total: int = 0
    critical: int = 0
    warning: int = 0
    info: int = 0

    def add(self, other: "IssueCounts") -> None:
        self.total += other.total
        self.critical += other.critical
        self.warning += other.warning
        self.info += other.info


class ViolationNode(BaseModel):
    """One affected DOM element."""
    target: List[Any] = Field(default_factory=list)
    html: str = ""

    class Config:
        extra = "allow"


class Violation(BaseModel):
    """
    A single axe-core rule failure. Passed through untouched apart from
    `impact`, which the page tester maps onto critical/warning/info.
    """
    id: str
    description: str = ""
    help: str = ""
    helpUrl: str = ""
    impact: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    nodes: List[ViolationNode] = Field(default_factory=list)

    class Config:
        extra = "allow"

    @property
    def wcag_tags(self) -> List[str]:
        return [tag for tag in self.tags if "wcag" in tag]


class PageResult(BaseModel):
    url: str
    scanned_at: datetime
    status: int = PAGE_STATUS_OK
    violation_counts: IssueCounts = Field(default_factory=IssueCounts)
    violations: List[Violation] = Field(default_factory=list)
    links: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == PAGE_STATUS_OK


class CrawlResult(BaseModel):
    pages_scanned: int = 0
    pages_found: int = 0
    issues: IssueCounts = Field(default_factory=IssueCounts)
    results: List[PageResult] = Field(default_factory=list)


class ScanSummary(BaseModel):
    """Figures shared by the reports and the results emails."""
    pages_scanned: int
    total_issues: int
    critical_issues: int
    warning_issues: int
    info_issues: int
    accessibility_score: int

    @classmethod
    def from_crawl(cls, crawl: CrawlResult, score: int) -> "ScanSummary":
        return cls(
            pages_scanned=crawl.pages_scanned,
            total_issues=crawl.issues.total,
            critical_issues=crawl.issues.critical,
            warning_issues=crawl.issues.warning,
            info_issues=crawl.issues.info,
            accessibility_score=score,
        )


class ReportRef(BaseModel):
    path: str
    url: str


class ReportRefs(BaseModel):
    pdf: ReportRef
    csv: ReportRef


class ScanRecord(BaseModel):
    scan_id: str
    url: str
    email: Optional[str] = None
    status: ScanStatus = ScanStatus.pending
    created_at: datetime
    completed_at: Optional[datetime] = None
    pages_scanned: int = 0
    pages_found: int = 0
    issues: IssueCounts = Field(default_factory=IssueCounts)
    results: List[PageResult] = Field(default_factory=list)
    accessibility_score: Optional[int] = None
    deep_scan_threshold: int
    deep_scan_triggered: bool = False
    report_urls: Optional[Dict[str, str]] = None
    send_copy_to_admin: bool = False
    admin_email: Optional[str] = None
    error_message: Optional[str] = None
