"""
Test configuration and fixtures for the A11yscan API and scan engine.

Environment variables are set before anything from `a11yscan` is imported so
that `settings` picks up a throwaway SQLite database and temp directories.
No test needs Chrome, a broker or network access.
"""

import os
import tempfile
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Generator, List, Optional
from unittest.mock import MagicMock

_test_root = tempfile.mkdtemp(prefix="a11yscan-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_test_root, 'test.db')}"
os.environ["DATA_DIR"] = os.path.join(_test_root, "data")
os.environ["REPORTS_DIR"] = os.path.join(_test_root, "reports")
os.environ["LOG_DIR"] = os.path.join(_test_root, "logs")
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"
os.environ["EMAIL_RELAY_URL"] = ""
os.environ["EMAIL_RELAY_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient

from a11yscan.features.scan.errors import NavigationError
from a11yscan.features.scan.schemas.results import IssueCounts, ScanRecord, ScanStatus
from a11yscan.features.scan.services.testing.page_tester import PageVerdict


# ============================================================================
# In-memory browser
# ============================================================================

class FakeSite:
    """
    A tiny website: url -> hrefs found on that page.

    Every browser interaction is appended to `events` so tests can assert on
    ordering, e.g. ("test", url) before ("extract", url).
    """

    def __init__(self, pages: Dict[str, List[str]], timeouts: Optional[set] = None):
        self.pages = pages
        self.timeouts = timeouts or set()
        self.events: List[tuple] = []
        self.open_tabs = 0
        self.tabs_opened = 0


class FakePage:
    def __init__(self, site: FakeSite):
        self.site = site
        self.url = "about:blank"

    def navigate(self, url: str, timeout: float) -> None:
        self.site.events.append(("navigate", url))
        if url in self.site.timeouts:
            raise NavigationError(url, f"Timeout loading page after {timeout:g}s")
        self.url = url

    @property
    def current_url(self) -> str:
        return self.url

    def evaluate(self, script: str, *args):
        self.site.events.append(("extract", self.url))
        return {"location": self.url, "hrefs": self.site.pages.get(self.url, [])}


class FakeBrowser:
    def __init__(self, site: FakeSite):
        self.site = site
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True

    @contextmanager
    def open_page(self):
        self.site.open_tabs += 1
        self.site.tabs_opened += 1
        try:
            yield FakePage(self.site)
        finally:
            self.site.open_tabs -= 1


class FakeTester:
    """Returns canned issue counts per URL instead of running axe-core."""

    def __init__(self, site: FakeSite, counts: Optional[Dict[str, IssueCounts]] = None, fail: Optional[set] = None):
        self.site = site
        self.counts = counts or {}
        self.fail = fail or set()
        self.prepared = 0

    def prepare(self) -> None:
        self.prepared += 1

    def test(self, page) -> PageVerdict:
        self.site.events.append(("test", page.current_url))
        if page.current_url in self.fail:
            raise RuntimeError("axe-core crashed")
        counts = self.counts.get(page.current_url, IssueCounts())
        return PageVerdict(violation_counts=counts.model_copy())


@pytest.fixture
def make_site():
    return FakeSite


@pytest.fixture
def fake_browser_factory():
    def build(site: FakeSite):
        browsers: List[FakeBrowser] = []

        def factory():
            browser = FakeBrowser(site)
            browsers.append(browser)
            return browser

        factory.browsers = browsers
        return factory
    return build


@pytest.fixture
def fake_tester():
    return FakeTester


# ============================================================================
# Records
# ============================================================================

@pytest.fixture
def pending_record():
    def build(scan_id: str = "scan-1", **overrides) -> ScanRecord:
        values = {
            "scan_id": scan_id,
            "url": "https://example.com",
            "email": "owner@example.com",
            "status": ScanStatus.pending,
            "created_at": datetime(2026, 10, 16, 9, 0, tzinfo=timezone.utc),
            "deep_scan_threshold": 90,
        }
        values.update(overrides)
        return ScanRecord(**values)
    return build


# ============================================================================
# API
# ============================================================================

@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from a11yscan.main import app

    return app


@pytest.fixture(scope="function")
def client(test_app) -> Generator[TestClient, None, None]:
    with TestClient(test_app) as test_client:
        yield test_client
    test_app.dependency_overrides.clear()


@pytest.fixture
def mock_notifier():
    return MagicMock()


@pytest.fixture
def mock_queue():
    return MagicMock()


@pytest.fixture
def scan_client(client, test_app, mock_notifier, mock_queue):
    """Client whose confirmation emails and Celery enqueue are mocked out."""
    from a11yscan.features.scan.routes.scan import get_scan_queue
    from a11yscan.features.scan.services.orchestration.factory import get_notifier

    test_app.dependency_overrides[get_notifier] = lambda: mock_notifier
    test_app.dependency_overrides[get_scan_queue] = lambda: mock_queue
    return client
