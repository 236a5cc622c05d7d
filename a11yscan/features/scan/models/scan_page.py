from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey, Index, JSON
from sqlalchemy.orm import relationship

from a11yscan.platform.db.base import BaseModel


class ScanPage(BaseModel):
    """
    One crawled URL within a scan job, in crawl order.

    Violations are stored as the raw axe-core payload.
    """
    __tablename__ = "scan_pages"

    scan_job_id = Column(String, ForeignKey("scan_jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)

    page_url = Column(String(2048), nullable=False)
    http_status = Column(Integer, nullable=False)
    error = Column(Text, nullable=True)

    total_issues = Column(Integer, default=0, nullable=False)
    critical_issues_count = Column(Integer, default=0, nullable=False)
    warning_issues_count = Column(Integer, default=0, nullable=False)
    info_issues_count = Column(Integer, default=0, nullable=False)

    violations = Column(JSON, nullable=False, default=list)
    links = Column(JSON, nullable=False, default=list)

    scanned_at = Column(DateTime(timezone=True), nullable=False)

    scan_job = relationship("ScanJob", back_populates="pages")

    __table_args__ = (
        Index("idx_scan_pages_job_position", "scan_job_id", "position"),
    )
