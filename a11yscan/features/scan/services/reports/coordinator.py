import logging
from typing import Callable, List

from a11yscan.features.scan.errors import ReportGenerationError
from a11yscan.features.scan.schemas.results import PageResult, ReportRef, ReportRefs, ScanSummary

logger = logging.getLogger(__name__)


class ReportCoordinator:
    """
    Produces the PDF and CSV reports for a finished crawl.

    The two reports are an all-or-nothing pair: if either renderer fails the
    whole generation fails and the scan is marked failed.
    """

    def __init__(
        self,
        render_pdf: Callable[[str, str, List[PageResult], ScanSummary], ReportRef],
        render_csv: Callable[[str, List[PageResult]], ReportRef],
    ):
        self.render_pdf = render_pdf
        self.render_csv = render_csv

    def generate(self, scan_id: str, url: str, results: List[PageResult], summary: ScanSummary) -> ReportRefs:
        try:
            pdf = self.render_pdf(scan_id, url, results, summary)
        except Exception as e:
            logger.error(f"Error generating PDF report for {scan_id}: {e}")
            raise ReportGenerationError(f"PDF report failed: {e}") from e

        try:
            csv = self.render_csv(scan_id, results)
        except Exception as e:
            logger.error(f"Error generating CSV report for {scan_id}: {e}")
            raise ReportGenerationError(f"CSV report failed: {e}") from e

        logger.info(f"Reports generated for scan {scan_id}")
        return ReportRefs(pdf=pdf, csv=csv)
