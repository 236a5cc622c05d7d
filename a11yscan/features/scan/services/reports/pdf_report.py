import logging
from datetime import datetime, timezone
from typing import List

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from xml.sax.saxutils import escape

from a11yscan.features.scan.schemas.results import PageResult, ReportRef, ScanSummary
from a11yscan.features.scan.services.reports.storage import ReportStorage
from a11yscan.features.scan.services.testing.page_tester import severity_for

logger = logging.getLogger(__name__)

SEVERITY_COLORS = {
    "critical": colors.red,
    "warning": colors.orange,
    "info": colors.blue,
}


class PdfReportRenderer:
    def __init__(self, storage: ReportStorage, title: str = "A11yscan Accessibility Report"):
        self.storage = storage
        self.title = title

    def render(self, scan_id: str, url: str, results: List[PageResult], summary: ScanSummary) -> ReportRef:
        pdf_path = self.storage.prepare(scan_id, "pdf")
        styles = getSampleStyleSheet()

        def footer(canvas, doc):
            canvas.saveState()
            canvas.setFont("Helvetica", 8)
            canvas.drawCentredString(A4[0] / 2, 12 * mm, f"{self.title} - {scan_id}")
            canvas.restoreState()

        story = [
            Paragraph(escape(self.title), styles["Title"]),
            Paragraph("Scan Information", styles["Heading2"]),
            Paragraph(f"URL: {escape(url)}", styles["Normal"]),
            Paragraph(f"Scan ID: {escape(scan_id)}", styles["Normal"]),
            Paragraph(f"Date: {datetime.now(timezone.utc):%Y-%m-%d}", styles["Normal"]),
            Paragraph(f"Pages Scanned: {summary.pages_scanned}", styles["Normal"]),
            Paragraph(f"Accessibility Score: {summary.accessibility_score}/100", styles["Normal"]),
            Spacer(1, 6 * mm),
            Paragraph("Summary of Findings", styles["Heading2"]),
            self._summary_table(summary),
            Spacer(1, 6 * mm),
            Paragraph("Issues By Page", styles["Heading2"]),
        ]

        for page in results:
            if not page.succeeded:
                continue
            story.append(Paragraph(f"Page: {escape(page.url)}", styles["Heading4"]))
            story.append(Paragraph(f"Scanned: {page.scanned_at:%Y-%m-%d %H:%M:%S}", styles["Normal"]))
            story.append(Paragraph(f"Issues: {page.violation_counts.total}", styles["Normal"]))
            if not page.violations:
                story.append(Paragraph("No accessibility issues found on this page.", styles["Italic"]))
            else:
                story.append(self._violations_table(page, styles))
            story.append(Spacer(1, 4 * mm))

        doc = SimpleDocTemplate(pdf_path, pagesize=A4, title=self.title, bottomMargin=20 * mm)
        doc.build(story, onFirstPage=footer, onLaterPages=footer)

        logger.info(f"PDF report written for {scan_id}: {pdf_path}")
        return ReportRef(path=pdf_path, url=self.storage.url_for(scan_id, "pdf"))

    @staticmethod
    def _summary_table(summary: ScanSummary) -> Table:
        table = Table([
            ["Total Issues", str(summary.total_issues)],
            ["Critical Issues", str(summary.critical_issues)],
            ["Warning Issues", str(summary.warning_issues)],
            ["Info Issues", str(summary.info_issues)],
        ], hAlign="LEFT")
        table.setStyle(TableStyle([
            ("TEXTCOLOR", (0, 1), (0, 1), SEVERITY_COLORS["critical"]),
            ("TEXTCOLOR", (0, 2), (0, 2), SEVERITY_COLORS["warning"]),
            ("TEXTCOLOR", (0, 3), (0, 3), SEVERITY_COLORS["info"]),
        ]))
        return table

    @staticmethod
    def _violations_table(page: PageResult, styles) -> Table:
        rows = [["Issue", "Impact", "Elements"]]
        row_styles = [
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("LINEBELOW", (0, 0), (-1, 0), 0.5, colors.black),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ]
        for index, violation in enumerate(page.violations, start=1):
            rows.append([
                Paragraph(escape(violation.description or violation.id), styles["BodyText"]),
                violation.impact or "unknown",
                str(len(violation.nodes) or 1),
            ])
            color = SEVERITY_COLORS[severity_for(violation.impact)]
            row_styles.append(("TEXTCOLOR", (1, index), (2, index), color))

        table = Table(rows, colWidths=[110 * mm, 30 * mm, 20 * mm], hAlign="LEFT", repeatRows=1)
        table.setStyle(TableStyle(row_styles))
        return table
