"""
Scan lifecycle: pending -> running -> completed | failed.

`ScanStateMachine` is the only writer of a scan record while the scan runs.
It drives the crawl, scores the result, has the reports generated, and sends
the notifications that belong to each terminal state.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from a11yscan.features.scan.errors import (
    InvalidScanStateError,
    PersistenceError,
    ScanError,
    ScanNotFoundError,
)
from a11yscan.features.scan.schemas.results import (
    CrawlResult,
    ReportRefs,
    ScanRecord,
    ScanStatus,
    ScanSummary,
)
from a11yscan.features.scan.services.notifications import scan_notifier
from a11yscan.features.scan.services.scoring.score import calculate_accessibility_score

logger = logging.getLogger(__name__)

TRANSITIONS = {
    ScanStatus.pending: {ScanStatus.running},
    ScanStatus.running: {ScanStatus.completed, ScanStatus.failed},
    ScanStatus.completed: set(),
    ScanStatus.failed: set(),
}

SANITIZED_ERROR_MESSAGE = (
    "We encountered an issue while scanning your website. "
    "Our team has been notified and will investigate."
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScanStateMachine:
    def __init__(
        self,
        store,
        crawler,
        report_coordinator,
        notifier,
        error_recipient: str,
        admin_recipient: str,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.crawler = crawler
        self.report_coordinator = report_coordinator
        self.notifier = notifier
        self.error_recipient = error_recipient
        self.admin_recipient = admin_recipient
        self.clock = clock

    # ------------------------------------------------------------------
    # Record access
    # ------------------------------------------------------------------

    def load(self, scan_id: str) -> ScanRecord:
        record = self.store.read(scan_id)
        if record is None:
            raise ScanNotFoundError(scan_id)
        return record

    def transition(self, scan_id: str, target: ScanStatus, **changes: Any) -> ScanRecord:
        record = self.load(scan_id)
        if target not in TRANSITIONS[record.status]:
            raise InvalidScanStateError(scan_id, record.status.value, target.value)
        logger.info(f"[{scan_id}] {record.status.value} -> {target.value}")
        return self.store.update(scan_id, status=target, **changes)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self, scan_id: str, max_pages: int, options: Optional[Dict[str, Any]] = None) -> ScanRecord:
        """
        Run a pending scan to a terminal state.

        Missing records and records that are not pending raise immediately.
        Every other failure ends in the `failed` state and is not re-raised.
        """
        options = options or {}
        record = self.transition(scan_id, ScanStatus.running)

        try:
            crawl = self.crawler.crawl(
                record.url,
                max_pages,
                on_progress=lambda progress: self._save_progress(scan_id, progress),
            )
            score = calculate_accessibility_score(crawl.issues, crawl.pages_scanned)
            summary = ScanSummary.from_crawl(crawl, score)
            reports = self.report_coordinator.generate(scan_id, record.url, crawl.results, summary)
            completed = self._complete(record, crawl, score, reports)
        except Exception as e:
            logger.exception(f"[{scan_id}] Scan failed: {e}")
            return self._fail(record, e)

        self._send_results(completed, summary, options)
        if completed.deep_scan_triggered:
            self._send_deep_scan_alert(completed, options)
        return completed

    def _save_progress(self, scan_id: str, progress: CrawlResult) -> None:
        try:
            self.store.update(
                scan_id,
                pages_scanned=progress.pages_scanned,
                pages_found=progress.pages_found,
                issues=progress.issues,
                results=progress.results,
            )
        except PersistenceError as e:
            # Final counts are written on completion
            logger.warning(f"[{scan_id}] Could not save crawl progress: {e}")

    def _complete(self, record: ScanRecord, crawl: CrawlResult, score: int, reports: ReportRefs) -> ScanRecord:
        # The deep-scan flag is written together with the final state
        triggered = score >= record.deep_scan_threshold
        if triggered:
            logger.info(f"[{record.scan_id}] Score {score} >= {record.deep_scan_threshold}, deep scan triggered")
        return self.transition(
            record.scan_id,
            ScanStatus.completed,
            completed_at=self.clock(),
            pages_scanned=crawl.pages_scanned,
            pages_found=crawl.pages_found,
            issues=crawl.issues,
            results=crawl.results,
            accessibility_score=score,
            report_urls={"pdf": reports.pdf.url, "csv": reports.csv.url},
            deep_scan_triggered=triggered,
        )

    def _fail(self, record: ScanRecord, error: Exception) -> ScanRecord:
        detail = f"{type(error).__name__}: {error}"
        failed = record
        try:
            failed = self.transition(
                record.scan_id,
                ScanStatus.failed,
                completed_at=self.clock(),
                error_message=detail,
            )
        except ScanError as e:
            logger.error(f"[{record.scan_id}] Could not record failure: {e}")

        payload = {"url": record.url, "scan_id": record.scan_id}
        self._safe_notify(
            scan_notifier.ERROR,
            self.error_recipient,
            {
                **payload,
                "operational": True,
                "error_message": f"Error scanning {record.url} requested by {record.email}: {detail}",
            },
        )
        if record.email:
            self._safe_notify(
                scan_notifier.ERROR,
                record.email,
                {**payload, "operational": False, "error_message": SANITIZED_ERROR_MESSAGE},
            )
        return failed

    # ------------------------------------------------------------------
    # Completion side effects
    # ------------------------------------------------------------------

    def _send_results(self, record: ScanRecord, summary: ScanSummary, options: Dict[str, Any]) -> None:
        payload = {
            "url": record.url,
            "scan_id": record.scan_id,
            "summary": summary.model_dump(),
            "report_urls": record.report_urls,
        }
        if record.email:
            self._safe_notify(scan_notifier.RESULTS, record.email, payload)

        send_copy = options.get("send_copy_to_admin", record.send_copy_to_admin)
        admin_email = options.get("admin_email") or record.admin_email
        if send_copy and admin_email:
            self._safe_notify(
                scan_notifier.ADMIN_RESULTS,
                admin_email,
                {**payload, "requester_email": record.email},
            )

    def _send_deep_scan_alert(self, record: ScanRecord, options: Dict[str, Any]) -> None:
        # Sent once, right after the completion write; never retried
        self._safe_notify(
            scan_notifier.DEEP_SCAN_ALERT,
            options.get("admin_email") or record.admin_email or self.admin_recipient,
            {
                "url": record.url,
                "scan_id": record.scan_id,
                "score": record.accessibility_score,
                "threshold": record.deep_scan_threshold,
                "report_urls": record.report_urls,
            },
        )

    def _safe_notify(self, kind: str, recipient: str, payload: Dict[str, Any]) -> None:
        # A lost email never changes the outcome of the scan
        try:
            self.notifier.notify(kind, recipient, payload)
        except Exception as e:
            logger.error(f"Failed to send {kind} email to {recipient}: {e}", exc_info=True)
