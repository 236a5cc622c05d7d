import math

from a11yscan.features.scan.schemas.results import IssueCounts

CRITICAL_WEIGHT = 5
WARNING_WEIGHT = 2
INFO_WEIGHT = 1


def calculate_accessibility_score(issues: IssueCounts, pages_scanned: int) -> int:
    """
    Calculate the accessibility score (0-100) from aggregated issue counts.

    Weighted issues are divided by sqrt(pages_scanned) so that a larger
    crawl is penalised less per issue. Halves round up.
    """
    if issues.total == 0:
        return 100

    weighted_issues = (
        issues.critical * CRITICAL_WEIGHT
        + issues.warning * WARNING_WEIGHT
        + issues.info * INFO_WEIGHT
    )
    pages_factor = math.sqrt(max(1, pages_scanned))
    penalty = (weighted_issues / pages_factor) * 2
    score = max(0.0, min(100.0, 100 - penalty))
    return int(math.floor(score + 0.5))
