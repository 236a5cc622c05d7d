from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, Index, JSON, Enum
from sqlalchemy.orm import relationship
import enum

from a11yscan.platform.db.base import BaseModel


class ScanJobStatus(enum.Enum):
    """Scan job status state machine"""
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"


class ScanJob(BaseModel):
    """
    One crawl request. `id` is the scan id handed back to the requester.
    """
    __tablename__ = "scan_jobs"

    url = Column(String(2048), nullable=False)
    email = Column(String(255), nullable=True)

    status = Column(Enum(ScanJobStatus), default=ScanJobStatus.pending, nullable=False, index=True)

    # Crawl progress
    pages_scanned = Column(Integer, default=0, nullable=False)
    pages_found = Column(Integer, default=0, nullable=False)

    # Issue counts (denormalized)
    total_issues = Column(Integer, default=0, nullable=False)
    critical_issues_count = Column(Integer, default=0, nullable=False)
    warning_issues_count = Column(Integer, default=0, nullable=False)
    info_issues_count = Column(Integer, default=0, nullable=False)

    accessibility_score = Column(Integer, nullable=True)  # 0-100, set on completion

    # Deep scan escalation
    deep_scan_threshold = Column(Integer, nullable=False)
    deep_scan_triggered = Column(Boolean, default=False, nullable=False)

    report_urls = Column(JSON, nullable=True)  # {"pdf": ..., "csv": ...}

    # Admin copy of the results email
    send_copy_to_admin = Column(Boolean, default=False, nullable=False)
    admin_email = Column(String(255), nullable=True)

    # Operational detail only, never shown to the requester
    error_message = Column(Text, nullable=True)

    queued_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    pages = relationship(
        "ScanPage",
        back_populates="scan_job",
        order_by="ScanPage.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index('idx_scan_jobs_status_queued', 'status', 'queued_at'),
    )
