import csv
import logging
from typing import Dict, Iterator, List

from a11yscan.features.scan.schemas.results import PageResult, ReportRef, Violation
from a11yscan.features.scan.services.reports.storage import ReportStorage

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    ("page", "Page URL"),
    ("issue", "Issue ID"),
    ("description", "Description"),
    ("impact", "Impact"),
    ("wcag", "WCAG Criteria"),
    ("help", "Help Text"),
    ("help_url", "Help URL"),
    ("html", "HTML"),
    ("target", "Target"),
]


def _target_text(target) -> str:
    if isinstance(target, list):
        return ", ".join(str(part) for part in target)
    return str(target or "")


def violation_rows(page_url: str, violation: Violation) -> Iterator[Dict[str, str]]:
    """One row per affected element, or a single summary row when none are listed."""
    base = {
        "page": page_url,
        "issue": violation.id,
        "description": violation.description,
        "impact": violation.impact or "unknown",
        "wcag": ", ".join(violation.wcag_tags),
        "help": violation.help,
        "help_url": violation.helpUrl,
    }
    if not violation.nodes:
        yield {**base, "html": "", "target": ""}
        return
    for node in violation.nodes:
        yield {**base, "html": node.html or "", "target": _target_text(node.target)}


class CsvReportRenderer:
    def __init__(self, storage: ReportStorage):
        self.storage = storage

    def render(self, scan_id: str, results: List[PageResult]) -> ReportRef:
        csv_path = self.storage.prepare(scan_id, "csv")

        with open(csv_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=[key for key, _ in CSV_COLUMNS])
            writer.writerow({key: title for key, title in CSV_COLUMNS})
            for page in results:
                # Failed pages carry no violations worth listing
                if not page.succeeded:
                    continue
                for violation in page.violations:
                    writer.writerows(violation_rows(page.url, violation))

        logger.info(f"CSV report written for {scan_id}: {csv_path}")
        return ReportRef(path=csv_path, url=self.storage.url_for(scan_id, "csv"))
