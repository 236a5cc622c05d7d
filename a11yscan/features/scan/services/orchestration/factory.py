"""
Wires the scan engine to its real collaborators from `settings`.

Nothing below the orchestration layer reads configuration; this module is
where limits, paths and recipients are handed down.
"""
from functools import partial

from a11yscan.features.scan.services.crawl.crawler import Crawler
from a11yscan.features.scan.services.browser.browser_service import launch_browser
from a11yscan.features.scan.services.notifications.scan_notifier import ScanNotifier
from a11yscan.features.scan.services.orchestration.state_machine import ScanStateMachine
from a11yscan.features.scan.services.reports.coordinator import ReportCoordinator
from a11yscan.features.scan.services.reports.csv_report import CsvReportRenderer
from a11yscan.features.scan.services.reports.pdf_report import PdfReportRenderer
from a11yscan.features.scan.services.reports.storage import ReportStorage
from a11yscan.features.scan.services.storage.scan_store import (
    FallbackScanStore,
    LocalScanStore,
    SqlScanStore,
)
from a11yscan.features.scan.services.testing.page_tester import PageTester, load_axe_source
from a11yscan.platform.config import settings
from a11yscan.platform.db.session import SessionLocal


def get_scan_store() -> FallbackScanStore:
    return FallbackScanStore(SqlScanStore(SessionLocal), LocalScanStore(settings.DATA_DIR))


def get_report_storage() -> ReportStorage:
    return ReportStorage(settings.REPORTS_DIR, settings.REPORTS_BASE_URL)


def get_notifier() -> ScanNotifier:
    return ScanNotifier(settings.APP_PUBLIC_URL, settings.MAIL_ADMIN_EMAIL)


def build_crawler() -> Crawler:
    browser_factory = partial(
        launch_browser,
        width=settings.SCAN_VIEWPORT_WIDTH,
        height=settings.SCAN_VIEWPORT_HEIGHT,
        user_agent=settings.SCAN_USER_AGENT,
        chromedriver_path=settings.CHROMEDRIVER_PATH,
    )
    tester = PageTester(
        partial(load_axe_source, settings.AXE_SCRIPT_PATH, settings.AXE_SCRIPT_URL),
        settings.SCAN_AXE_TAGS,
        settings.SCAN_AXE_TIMEOUT,
    )
    return Crawler(
        browser_factory,
        tester,
        navigation_timeout=settings.SCAN_NAVIGATION_TIMEOUT,
        settle_delay=settings.SCAN_SETTLE_DELAY,
    )


def build_state_machine() -> ScanStateMachine:
    storage = get_report_storage()
    coordinator = ReportCoordinator(
        PdfReportRenderer(storage).render,
        CsvReportRenderer(storage).render,
    )
    return ScanStateMachine(
        store=get_scan_store(),
        crawler=build_crawler(),
        report_coordinator=coordinator,
        notifier=get_notifier(),
        error_recipient=settings.MAIL_ERROR_EMAIL,
        admin_recipient=settings.MAIL_ADMIN_EMAIL,
    )
