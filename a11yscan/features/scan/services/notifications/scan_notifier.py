"""Email notifications sent over the lifetime of a scan."""
import logging
import os
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from a11yscan.platform.services.email import send_email

logger = logging.getLogger(__name__)

current_dir = os.path.dirname(os.path.abspath(__file__))
scan_template_dir = os.path.join(current_dir, "../../template")

# Fallback path if running from a different location
if not os.path.exists(scan_template_dir):
    scan_template_dir = os.path.join(os.getcwd(), "a11yscan/features/scan/template")

env = Environment(
    loader=FileSystemLoader(scan_template_dir),
    autoescape=select_autoescape(["html"]),
)

CONFIRMATION = "confirmation"
RESULTS = "results"
ADMIN_RESULTS = "admin-results"
DEEP_SCAN_ALERT = "deep-scan-alert"
ERROR = "error"

# kind -> (template, subject)
NOTIFICATIONS: Dict[str, tuple] = {
    CONFIRMATION: ("confirmation.html", "Your A11yscan Accessibility Scan Has Started"),
    RESULTS: ("results.html", "Your A11yscan Accessibility Report is Ready"),
    ADMIN_RESULTS: ("admin_results.html", "[ADMIN] New Scan Results for {url}"),
    DEEP_SCAN_ALERT: ("deep_scan.html", "[ALERT] High Scoring Site ({score}/100) - Deep Scan Candidate"),
    ERROR: ("error.html", "Issue with Your A11yscan Accessibility Scan"),
}


class ScanNotifier:
    def __init__(
        self,
        app_url: str,
        support_email: str,
        send: Optional[Callable[[str, str, str], None]] = None,
    ):
        self.app_url = app_url.rstrip("/")
        self.support_email = support_email
        self.send = send or send_email

    def render(self, kind: str, payload: Dict[str, Any]) -> tuple:
        if kind not in NOTIFICATIONS:
            raise ValueError(f"Unknown notification kind: {kind}")

        template_name, subject = NOTIFICATIONS[kind]
        context = {
            "app_url": self.app_url,
            "support_email": self.support_email,
            "year": datetime.now(timezone.utc).year,
            **payload,
        }
        html = env.get_template(template_name).render(**context)
        return subject.format(**context), html

    def notify(self, kind: str, recipient: str, payload: Dict[str, Any]) -> None:
        subject, html = self.render(kind, payload)
        self.send(recipient, subject, html)
        logger.info(f"Sent {kind} email to {recipient} for scan {payload.get('scan_id')}")
