import pytest
from unittest.mock import MagicMock, patch

from a11yscan.features.scan.errors import AccessibilityEngineError
from a11yscan.features.scan.schemas.results import Violation
from a11yscan.features.scan.services.testing.page_tester import (
    PageTester,
    count_violations,
    load_axe_source,
    severity_for,
)

TAGS = ["wcag2a", "wcag2aa"]


def _violation(rule_id, impact, nodes):
    return {
        "id": rule_id,
        "description": f"{rule_id} description",
        "help": f"Fix {rule_id}",
        "helpUrl": f"https://dequeuniversity.com/rules/axe/4.10/{rule_id}",
        "impact": impact,
        "tags": ["wcag2a", "wcag111", "cat.text-alternatives"],
        "nodes": [{"target": [f"#el-{i}"], "html": f"<img id='el-{i}'>"} for i in range(nodes)],
    }


class TestSeverity:
    @pytest.mark.parametrize("impact,expected", [
        ("critical", "critical"),
        ("serious", "critical"),
        ("moderate", "warning"),
        ("minor", "warning"),
        (None, "info"),
        ("something-new", "info"),
    ])
    def test_severity_for(self, impact, expected):
        assert severity_for(impact) == expected

    def test_counts_elements_not_rules(self):
        violations = [
            Violation.model_validate(_violation("image-alt", "critical", 3)),
            Violation.model_validate(_violation("color-contrast", "serious", 1)),
            Violation.model_validate(_violation("region", "moderate", 2)),
        ]
        counts = count_violations(violations)

        assert counts.total == 6
        assert counts.critical == 4
        assert counts.warning == 2
        assert counts.info == 0

    def test_violation_without_nodes_counts_once(self):
        counts = count_violations([Violation.model_validate(_violation("landmark-one-main", None, 0))])

        assert counts.total == 1
        assert counts.info == 1


class TestPageTester:
    @pytest.fixture
    def page(self):
        page = MagicMock()
        page.current_url = "https://example.com/"
        return page

    def test_runs_axe_with_configured_tags(self, page):
        page.evaluate_async.return_value = {
            "violations": [_violation("image-alt", "critical", 2)],
            "passes": 12,
            "incomplete": 1,
        }
        tester = PageTester(lambda: "window.axe = {};", TAGS, timeout=60)

        verdict = tester.test(page)

        page.inject.assert_called_once_with("window.axe = {};")
        args, kwargs = page.evaluate_async.call_args
        assert args[1] == TAGS
        assert kwargs["timeout"] == 60
        assert verdict.violation_counts.total == 2
        assert verdict.violation_counts.critical == 2
        assert verdict.violations[0].id == "image-alt"
        assert verdict.violations[0].wcag_tags == ["wcag2a", "wcag111"]
        assert verdict.passes == 12
        assert verdict.incomplete == 1

    def test_clean_page(self, page):
        page.evaluate_async.return_value = {"violations": [], "passes": 30, "incomplete": 0}
        verdict = PageTester(lambda: "", TAGS, timeout=60).test(page)

        assert verdict.violations == []
        assert verdict.violation_counts.total == 0

    def test_engine_error_is_raised(self, page):
        page.evaluate_async.return_value = {"error": "axe-core is not loaded"}
        tester = PageTester(lambda: "", TAGS, timeout=60)

        with pytest.raises(AccessibilityEngineError) as exc_info:
            tester.test(page)
        assert exc_info.value.url == "https://example.com/"
        assert "axe-core is not loaded" in str(exc_info.value)

    def test_unexpected_result_is_raised(self, page):
        page.evaluate_async.return_value = None

        with pytest.raises(AccessibilityEngineError):
            PageTester(lambda: "", TAGS, timeout=60).test(page)

    def test_axe_source_loaded_once(self, page):
        page.evaluate_async.return_value = {"violations": []}
        loader = MagicMock(return_value="axe source")
        tester = PageTester(loader, TAGS, timeout=60)

        tester.prepare()
        tester.test(page)
        tester.test(page)

        loader.assert_called_once_with()
        assert page.inject.call_count == 2


class TestLoadAxeSource:
    def test_reads_existing_file(self, tmp_path):
        path = tmp_path / "axe.min.js"
        path.write_text("/* axe */", encoding="utf-8")

        with patch("a11yscan.features.scan.services.testing.page_tester.requests.get") as mock_get:
            assert load_axe_source(str(path), "https://cdn.example/axe.min.js") == "/* axe */"
        mock_get.assert_not_called()

    def test_downloads_missing_file(self, tmp_path):
        path = tmp_path / "vendor" / "axe.min.js"
        response = MagicMock()
        response.text = "/* downloaded axe */"

        with patch(
            "a11yscan.features.scan.services.testing.page_tester.requests.get",
            return_value=response,
        ) as mock_get:
            source = load_axe_source(str(path), "https://cdn.example/axe.min.js")

        mock_get.assert_called_once_with("https://cdn.example/axe.min.js", timeout=30)
        response.raise_for_status.assert_called_once()
        assert source == "/* downloaded axe */"
        assert path.read_text(encoding="utf-8") == "/* downloaded axe */"
