from unittest.mock import MagicMock, patch

import pytest

from a11yscan.features.scan.errors import InvalidScanStateError, PersistenceError, ScanNotFoundError
from a11yscan.features.scan.schemas.results import ScanStatus
from a11yscan.features.scan.services.orchestration.factory import build_state_machine
from a11yscan.features.scan.services.storage.scan_store import FallbackScanStore
from a11yscan.features.scan.workers.tasks import run_scan, start_scan
from a11yscan.platform.celery_app import celery_app
from a11yscan.platform.config import settings

TASKS = "a11yscan.features.scan.workers.tasks"


def test_run_scan_drives_state_machine(pending_record):
    machine = MagicMock()
    machine.run.return_value = pending_record(status=ScanStatus.completed, accessibility_score=93)

    with patch(f"{TASKS}.build_state_machine", return_value=machine):
        result = run_scan.run("scan-1", "https://example.com", 5, {"admin_email": "boss@example.com"})

    machine.run.assert_called_once_with("scan-1", 5, {"admin_email": "boss@example.com"})
    assert result == {"scan_id": "scan-1", "status": "completed", "accessibility_score": 93}


def test_run_scan_drops_redelivered_task():
    machine = MagicMock()
    machine.run.side_effect = InvalidScanStateError("scan-1", "running", "running")

    with patch(f"{TASKS}.build_state_machine", return_value=machine):
        result = run_scan.run("scan-1", "https://example.com", 5)

    assert result["status"] is None
    assert "cannot move from running" in result["error"]


def test_run_scan_for_missing_record():
    machine = MagicMock()
    machine.run.side_effect = ScanNotFoundError("scan-1")

    with patch(f"{TASKS}.build_state_machine", return_value=machine):
        result = run_scan.run("scan-1", "https://example.com", 5)

    assert result["status"] is None


def test_storage_outage_fails_the_task():
    machine = MagicMock()
    machine.run.side_effect = PersistenceError("connection refused")

    with patch(f"{TASKS}.build_state_machine", return_value=machine):
        with pytest.raises(PersistenceError):
            run_scan.run("scan-1", "https://example.com", 5)


def test_start_scan_enqueues():
    with patch.object(run_scan, "delay") as mock_delay:
        start_scan("scan-1", "https://example.com", 5)

    mock_delay.assert_called_once_with("scan-1", "https://example.com", 5, {})


def test_scan_task_routed_to_orchestration_queue():
    routes = celery_app.conf.task_routes
    assert routes[run_scan.name] == {"queue": "scan.orchestration"}
    assert celery_app.conf.worker_prefetch_multiplier == 1
    assert celery_app.conf.task_acks_late is True


def test_state_machine_built_from_settings():
    machine = build_state_machine()

    assert isinstance(machine.store, FallbackScanStore)
    assert machine.error_recipient == settings.MAIL_ERROR_EMAIL
    assert machine.admin_recipient == settings.MAIL_ADMIN_EMAIL
    assert machine.crawler.navigation_timeout == settings.SCAN_NAVIGATION_TIMEOUT
    assert machine.crawler.settle_delay == settings.SCAN_SETTLE_DELAY
    assert machine.crawler.tester.tags == settings.SCAN_AXE_TAGS
    # The axe bundle is only loaded once a crawl starts
    assert machine.crawler.tester.axe_source is None
