import os

REPORT_KINDS = ("pdf", "csv")


class ReportStorage:
    """
    Local filesystem layout for generated reports:
    `{reports_dir}/{kind}/{scan_id}.{kind}`, served under `/api/v1/reports`.
    """

    def __init__(self, reports_dir: str, base_url: str):
        self.reports_dir = reports_dir
        self.base_url = base_url.rstrip("/")

    def path_for(self, scan_id: str, kind: str) -> str:
        if kind not in REPORT_KINDS:
            raise ValueError(f"Invalid report type: {kind}")
        return os.path.join(self.reports_dir, kind, f"{scan_id}.{kind}")

    def url_for(self, scan_id: str, kind: str) -> str:
        if kind not in REPORT_KINDS:
            raise ValueError(f"Invalid report type: {kind}")
        return f"{self.base_url}/api/v1/reports/{scan_id}/{kind}"

    def prepare(self, scan_id: str, kind: str) -> str:
        """Return the target path for a new report, creating its directory."""
        path = self.path_for(scan_id, kind)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        return path

    def exists(self, scan_id: str, kind: str) -> bool:
        return os.path.isfile(self.path_for(scan_id, kind))
