import csv
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from a11yscan.features.scan.errors import ReportGenerationError
from a11yscan.features.scan.schemas.results import (
    PAGE_STATUS_FAILED,
    IssueCounts,
    PageResult,
    ReportRef,
    ScanSummary,
    Violation,
)
from a11yscan.features.scan.services.reports.coordinator import ReportCoordinator
from a11yscan.features.scan.services.reports.csv_report import CsvReportRenderer
from a11yscan.features.scan.services.reports.pdf_report import PdfReportRenderer
from a11yscan.features.scan.services.reports.storage import ReportStorage

SCANNED_AT = datetime(2026, 10, 16, 9, 15)


@pytest.fixture
def storage(tmp_path):
    return ReportStorage(str(tmp_path / "reports"), "http://localhost:8000/")


@pytest.fixture
def results():
    image_alt = Violation(
        id="image-alt",
        description="Images must have alternate text",
        help="Images must have alternate text",
        helpUrl="https://dequeuniversity.com/rules/axe/4.10/image-alt",
        impact="critical",
        tags=["cat.text-alternatives", "wcag2a", "wcag111"],
        nodes=[
            {"target": ["img.logo"], "html": "<img class=\"logo\" src=\"logo.png\">"},
            {"target": ["#hero", "img"], "html": "<img src=\"hero.jpg\">"},
        ],
    )
    landmark = Violation(
        id="landmark-one-main",
        description="Document should have one main landmark",
        help="Document should have one main landmark",
        helpUrl="https://dequeuniversity.com/rules/axe/4.10/landmark-one-main",
        impact="moderate",
        tags=["best-practice"],
        nodes=[],
    )
    return [
        PageResult(
            url="https://example.com/",
            scanned_at=SCANNED_AT,
            violation_counts=IssueCounts(total=3, critical=2, warning=1),
            violations=[image_alt, landmark],
        ),
        PageResult(url="https://example.com/clean", scanned_at=SCANNED_AT),
        PageResult(
            url="https://example.com/slow",
            scanned_at=SCANNED_AT,
            status=PAGE_STATUS_FAILED,
            error="Timeout loading page after 30s",
        ),
    ]


@pytest.fixture
def summary():
    return ScanSummary(
        pages_scanned=3, total_issues=3, critical_issues=2, warning_issues=1, info_issues=0,
        accessibility_score=87,
    )


class TestReportStorage:
    def test_paths_and_urls(self, storage, tmp_path):
        assert storage.path_for("scan-1", "pdf") == str(tmp_path / "reports" / "pdf" / "scan-1.pdf")
        assert storage.url_for("scan-1", "csv") == "http://localhost:8000/api/v1/reports/scan-1/csv"

    def test_unknown_kind(self, storage):
        with pytest.raises(ValueError):
            storage.path_for("scan-1", "docx")
        with pytest.raises(ValueError):
            storage.url_for("scan-1", "html")


class TestCsvReport:
    def test_one_row_per_element(self, storage, results):
        ref = CsvReportRenderer(storage).render("scan-1", results)

        with open(ref.path, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))

        assert rows[0] == [
            "Page URL", "Issue ID", "Description", "Impact", "WCAG Criteria",
            "Help Text", "Help URL", "HTML", "Target",
        ]
        body = rows[1:]
        assert len(body) == 3
        assert body[0][:5] == [
            "https://example.com/", "image-alt", "Images must have alternate text", "critical",
            "wcag2a, wcag111",
        ]
        assert body[0][8] == "img.logo"
        assert body[1][8] == "#hero, img"
        # A violation without elements still gets one row
        assert body[2][1] == "landmark-one-main"
        assert body[2][7] == ""
        assert ref.url == "http://localhost:8000/api/v1/reports/scan-1/csv"

    def test_failed_pages_are_left_out(self, storage, results):
        ref = CsvReportRenderer(storage).render("scan-1", results)

        with open(ref.path, newline="", encoding="utf-8") as f:
            content = f.read()
        assert "https://example.com/slow" not in content


class TestPdfReport:
    def test_writes_pdf(self, storage, results, summary):
        ref = PdfReportRenderer(storage).render("scan-1", "https://example.com/", results, summary)

        with open(ref.path, "rb") as f:
            assert f.read(5) == b"%PDF-"
        assert storage.exists("scan-1", "pdf")
        assert ref.url == "http://localhost:8000/api/v1/reports/scan-1/pdf"


class TestReportCoordinator:
    def test_both_reports(self, storage, results, summary):
        coordinator = ReportCoordinator(
            PdfReportRenderer(storage).render,
            CsvReportRenderer(storage).render,
        )

        refs = coordinator.generate("scan-1", "https://example.com/", results, summary)

        assert refs.pdf.url.endswith("/scan-1/pdf")
        assert refs.csv.url.endswith("/scan-1/csv")

    def test_pdf_failure(self, results, summary):
        render_csv = MagicMock()
        coordinator = ReportCoordinator(MagicMock(side_effect=RuntimeError("font missing")), render_csv)

        with pytest.raises(ReportGenerationError, match="PDF report failed"):
            coordinator.generate("scan-1", "https://example.com/", results, summary)

    def test_csv_failure_after_pdf(self, results, summary):
        render_pdf = MagicMock(return_value=ReportRef(path="/tmp/x.pdf", url="http://x/pdf"))
        coordinator = ReportCoordinator(render_pdf, MagicMock(side_effect=OSError("disk full")))

        with pytest.raises(ReportGenerationError, match="CSV report failed"):
            coordinator.generate("scan-1", "https://example.com/", results, summary)
        render_pdf.assert_called_once()
