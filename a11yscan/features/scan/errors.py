"""
Scan error taxonomy.

Page-scoped errors are recovered inside the crawl loop and recorded on a
failed PageResult. Scan-scoped errors abort the scan and move it to `failed`.
Precondition errors are raised to the caller (API or worker) as-is.
"""


class ScanError(Exception):
    """Base class for every error raised by the scan engine."""


# ── Page-scoped ─────────────────────────────────

class PageScanError(ScanError):
    """A single page could not be tested. The crawl continues."""

    def __init__(self, url: str, message: str):
        self.url = url
        self.message = message
        super().__init__(f"{url}: {message}")


class NavigationError(PageScanError):
    pass


class AccessibilityEngineError(PageScanError):
    pass


# ── Scan-scoped ─────────────────────────────────

class ScanFailedError(ScanError):
    """The whole scan is abandoned."""


class BrowserLaunchError(ScanFailedError):
    pass


class ReportGenerationError(ScanFailedError):
    pass


class PersistenceError(ScanFailedError):
    pass


# ── Preconditions ───────────────────────────────

class ScanNotFoundError(ScanError):
    def __init__(self, scan_id: str):
        self.scan_id = scan_id
        super().__init__(f"Scan {scan_id} not found")


class InvalidScanStateError(ScanError):
    def __init__(self, scan_id: str, current: str, target: str):
        self.scan_id = scan_id
        self.current = current
        self.target = target
        super().__init__(f"Scan {scan_id} cannot move from {current} to {target}")
