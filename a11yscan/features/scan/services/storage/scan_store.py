"""
Scan record persistence.

`SqlScanStore` is the primary store. `LocalScanStore` keeps one JSON file per
scan and is used by `FallbackScanStore` when the database rejects a write, so
the final state of a scan is always written somewhere.
"""
import json
import logging
import os
import re
from typing import Any, Callable, Dict, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from a11yscan.features.scan.errors import PersistenceError, ScanNotFoundError
from a11yscan.features.scan.models.scan_job import ScanJob, ScanJobStatus
from a11yscan.features.scan.models.scan_page import ScanPage
from a11yscan.features.scan.schemas.results import (
    IssueCounts,
    PageResult,
    ScanRecord,
    ScanStatus,
    Violation,
)

logger = logging.getLogger(__name__)

_SCAN_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def is_valid_scan_id(scan_id: str) -> bool:
    return bool(scan_id) and bool(_SCAN_ID_PATTERN.match(scan_id))


def merge_record(record: ScanRecord, changes: Dict[str, Any]) -> ScanRecord:
    unknown = set(changes) - set(ScanRecord.model_fields)
    if unknown:
        raise ValueError(f"Unknown scan record fields: {sorted(unknown)}")
    return ScanRecord.model_validate({**record.model_dump(), **changes})


class ScanStore(Protocol):
    def create(self, scan_id: str, record: ScanRecord) -> None: ...

    def read(self, scan_id: str) -> Optional[ScanRecord]: ...

    def update(self, scan_id: str, **changes: Any) -> ScanRecord: ...


# ============================================================================
# Database store
# ============================================================================

class SqlScanStore:
    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def create(self, scan_id: str, record: ScanRecord) -> None:
        db = self.session_factory()
        try:
            job = ScanJob(id=scan_id, queued_at=record.created_at)
            self._apply(job, record.model_dump(exclude={"scan_id", "created_at"}))
            db.add(job)
            db.commit()
            logger.info(f"Scan record created: {scan_id}")
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Could not create scan {scan_id}: {e}") from e
        finally:
            db.close()

    def read(self, scan_id: str) -> Optional[ScanRecord]:
        if not is_valid_scan_id(scan_id):
            return None

        db = self.session_factory()
        try:
            job = db.execute(select(ScanJob).where(ScanJob.id == scan_id)).scalar_one_or_none()
            return self._to_record(job) if job else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not read scan {scan_id}: {e}") from e
        finally:
            db.close()

    def update(self, scan_id: str, **changes: Any) -> ScanRecord:
        if not is_valid_scan_id(scan_id):
            raise ScanNotFoundError(scan_id)

        db = self.session_factory()
        try:
            job = db.execute(select(ScanJob).where(ScanJob.id == scan_id)).scalar_one_or_none()
            if job is None:
                raise ScanNotFoundError(scan_id)

            # Validate against the record schema before touching the row
            merged = merge_record(self._to_record(job), changes)
            self._apply(job, merged.model_dump(include=set(changes)))
            db.commit()
            logger.info(f"Scan record updated: {scan_id} ({', '.join(sorted(changes))})")
            return merged
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Could not update scan {scan_id}: {e}") from e
        finally:
            db.close()

    @staticmethod
    def _apply(job: ScanJob, values: Dict[str, Any]) -> None:
        for key, value in values.items():
            if key == "status":
                job.status = ScanJobStatus(ScanStatus(value).value)
            elif key == "issues":
                counts = IssueCounts.model_validate(value)
                job.total_issues = counts.total
                job.critical_issues_count = counts.critical
                job.warning_issues_count = counts.warning
                job.info_issues_count = counts.info
            elif key == "results":
                job.pages = [
                    SqlScanStore._to_page(position, PageResult.model_validate(page))
                    for position, page in enumerate(value)
                ]
            else:
                setattr(job, key, value)

    @staticmethod
    def _to_page(position: int, result: PageResult) -> ScanPage:
        return ScanPage(
            position=position,
            page_url=result.url,
            http_status=result.status,
            error=result.error,
            total_issues=result.violation_counts.total,
            critical_issues_count=result.violation_counts.critical,
            warning_issues_count=result.violation_counts.warning,
            info_issues_count=result.violation_counts.info,
            violations=[v.model_dump(mode="json") for v in result.violations],
            links=list(result.links),
            scanned_at=result.scanned_at,
        )

    @staticmethod
    def _to_record(job: ScanJob) -> ScanRecord:
        return ScanRecord(
            scan_id=job.id,
            url=job.url,
            email=job.email,
            status=ScanStatus(job.status.value),
            created_at=job.queued_at,
            completed_at=job.completed_at,
            pages_scanned=job.pages_scanned or 0,
            pages_found=job.pages_found or 0,
            issues=IssueCounts(
                total=job.total_issues or 0,
                critical=job.critical_issues_count or 0,
                warning=job.warning_issues_count or 0,
                info=job.info_issues_count or 0,
            ),
            results=[
                PageResult(
                    url=page.page_url,
                    scanned_at=page.scanned_at,
                    status=page.http_status,
                    violation_counts=IssueCounts(
                        total=page.total_issues,
                        critical=page.critical_issues_count,
                        warning=page.warning_issues_count,
                        info=page.info_issues_count,
                    ),
                    violations=[Violation.model_validate(v) for v in page.violations or []],
                    links=page.links or [],
                    error=page.error,
                )
                for page in job.pages
            ],
            accessibility_score=job.accessibility_score,
            deep_scan_threshold=job.deep_scan_threshold,
            deep_scan_triggered=bool(job.deep_scan_triggered),
            report_urls=job.report_urls,
            send_copy_to_admin=bool(job.send_copy_to_admin),
            admin_email=job.admin_email,
            error_message=job.error_message,
        )


# ============================================================================
# Local JSON store
# ============================================================================

class LocalScanStore:
    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        os.makedirs(self.data_dir, exist_ok=True)

    def _path(self, scan_id: str) -> str:
        return os.path.join(self.data_dir, f"{scan_id}.json")

    def put(self, record: ScanRecord) -> None:
        if not is_valid_scan_id(record.scan_id):
            raise ScanNotFoundError(record.scan_id)
        try:
            tmp_path = self._path(record.scan_id) + ".tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(record.model_dump_json(indent=2))
            os.replace(tmp_path, self._path(record.scan_id))
        except OSError as e:
            raise PersistenceError(f"Could not write scan {record.scan_id}: {e}") from e

    def create(self, scan_id: str, record: ScanRecord) -> None:
        self.put(record.model_copy(update={"scan_id": scan_id}))
        logger.info(f"Scan record stored locally: {scan_id}")

    def read(self, scan_id: str) -> Optional[ScanRecord]:
        if not is_valid_scan_id(scan_id):
            return None
        path = self._path(scan_id)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return ScanRecord.model_validate(json.load(f))
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Could not read scan {scan_id}: {e}") from e

    def update(self, scan_id: str, **changes: Any) -> ScanRecord:
        record = self.read(scan_id)
        if record is None:
            raise ScanNotFoundError(scan_id)
        merged = merge_record(record, changes)
        self.put(merged)
        return merged


# ============================================================================
# Primary store with local fallback
# ============================================================================

class FallbackScanStore:
    """
    Once a scan has a local copy, that copy is the current one: every later
    read and write for the scan goes to the fallback store.

    The last record read or written through the primary is kept per scan, so
    a scan whose database goes away mid-run can still be moved to local
    storage with its latest known state.
    """

    def __init__(self, primary: ScanStore, fallback: LocalScanStore):
        self.primary = primary
        self.fallback = fallback
        self._last_known: Dict[str, ScanRecord] = {}

    def _remember(self, record: Optional[ScanRecord]) -> Optional[ScanRecord]:
        if record is not None:
            self._last_known[record.scan_id] = record
        return record

    def create(self, scan_id: str, record: ScanRecord) -> None:
        try:
            self.primary.create(scan_id, record)
        except PersistenceError as e:
            logger.error(f"Primary store failed for {scan_id}, falling back to local storage: {e}")
            self.fallback.create(scan_id, record)
            return
        self._remember(record.model_copy(update={"scan_id": scan_id}))

    def read(self, scan_id: str) -> Optional[ScanRecord]:
        local = self.fallback.read(scan_id)
        if local is not None:
            return local
        try:
            return self._remember(self.primary.read(scan_id))
        except PersistenceError as e:
            last_known = self._last_known.get(scan_id)
            if last_known is None:
                raise
            logger.error(f"Primary read failed for {scan_id}, moving last known state to local storage: {e}")
            self.fallback.put(last_known)
            return last_known

    def update(self, scan_id: str, **changes: Any) -> ScanRecord:
        if self.fallback.read(scan_id) is not None:
            return self.fallback.update(scan_id, **changes)

        try:
            return self._remember(self.primary.update(scan_id, **changes))
        except PersistenceError as e:
            logger.error(f"Primary update failed for {scan_id}, falling back to local storage: {e}")

        try:
            record = self.primary.read(scan_id)
        except PersistenceError:
            record = None
        record = record or self._last_known.get(scan_id)
        if record is None:
            raise PersistenceError(f"Scan {scan_id} could not be updated in any store")
        merged = merge_record(record, changes)
        self.fallback.put(merged)
        return merged
