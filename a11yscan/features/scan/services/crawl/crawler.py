"""
Bounded breadth-first crawl of one site.

Every page is opened, tested and closed before the next URL is dequeued.
A failure while processing one URL is recorded on that page's result and the
crawl moves on; only a failure to start or keep the browser session aborts it.
"""
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Deque, List, Optional, Set

from a11yscan.features.scan.schemas.results import (
    PAGE_STATUS_FAILED,
    PAGE_STATUS_OK,
    CrawlResult,
    IssueCounts,
    PageResult,
)
from a11yscan.features.scan.services.discovery.link_extractor import extract_links

logger = logging.getLogger(__name__)


@dataclass
class CrawlContext:
    """Traversal state for a single crawl. Created per call, never shared."""
    root_url: str
    max_pages: int
    queue: Deque[str] = field(default_factory=deque)
    visited: Set[str] = field(default_factory=set)
    discovered: Set[str] = field(default_factory=set)
    results: List[PageResult] = field(default_factory=list)
    issues: IssueCounts = field(default_factory=IssueCounts)

    @classmethod
    def start(cls, root_url: str, max_pages: int) -> "CrawlContext":
        context = cls(root_url=root_url, max_pages=max(1, max_pages))
        context.queue.append(root_url)
        context.discovered.add(root_url)
        return context

    @property
    def pages_scanned(self) -> int:
        return len(self.results)

    @property
    def budget_left(self) -> bool:
        return self.pages_scanned < self.max_pages

    @property
    def testing_last_page(self) -> bool:
        return self.pages_scanned == self.max_pages - 1

    def next_url(self) -> Optional[str]:
        """Pop the queue until an unvisited URL shows up."""
        while self.queue:
            url = self.queue.popleft()
            if url not in self.visited:
                self.visited.add(url)
                return url
        return None

    def schedule(self, links: List[str]) -> None:
        for link in links:
            if link not in self.discovered:
                self.discovered.add(link)
                self.queue.append(link)

    def record_success(self, result: PageResult) -> None:
        self.results.append(result)
        self.issues.add(result.violation_counts)

    def record_failure(self, url: str, error: str) -> None:
        self.results.append(
            PageResult(
                url=url,
                scanned_at=datetime.now(timezone.utc),
                status=PAGE_STATUS_FAILED,
                error=error,
            )
        )

    def to_result(self) -> CrawlResult:
        return CrawlResult(
            pages_scanned=self.pages_scanned,
            pages_found=len(self.discovered),
            issues=self.issues.model_copy(),
            results=list(self.results),
        )


class Crawler:
    def __init__(
        self,
        browser_factory: Callable,
        tester,
        navigation_timeout: float = 30.0,
        settle_delay: float = 2.0,
        link_extractor: Callable = extract_links,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.browser_factory = browser_factory
        self.tester = tester
        self.navigation_timeout = navigation_timeout
        self.settle_delay = settle_delay
        self.link_extractor = link_extractor
        self.sleep = sleep

    def crawl(
        self,
        root_url: str,
        max_pages: int,
        on_progress: Optional[Callable[[CrawlResult], None]] = None,
    ) -> CrawlResult:
        context = CrawlContext.start(root_url, max_pages)
        logger.info(f"Starting crawl of {root_url} (max {context.max_pages} pages)")

        with self.browser_factory() as browser:
            self.tester.prepare()
            while context.budget_left:
                url = context.next_url()
                if url is None:
                    break
                self._process(browser, context, url)
                if on_progress:
                    on_progress(context.to_result())

        result = context.to_result()
        logger.info(
            f"Crawl of {root_url} finished: {result.pages_scanned} scanned, "
            f"{result.pages_found} found, {result.issues.total} issues"
        )
        return result

    def _process(self, browser, context: CrawlContext, url: str) -> None:
        try:
            with browser.open_page() as page:
                page.navigate(url, timeout=self.navigation_timeout)
                self.sleep(self.settle_delay)

                verdict = self.tester.test(page)

                # Links found on the last allowed page could never be visited
                links: List[str] = []
                if not context.testing_last_page:
                    links = self.link_extractor(page, context.root_url)
                    context.schedule(links)

            context.record_success(
                PageResult(
                    url=url,
                    scanned_at=datetime.now(timezone.utc),
                    status=PAGE_STATUS_OK,
                    violation_counts=verdict.violation_counts,
                    violations=verdict.violations,
                    links=links,
                )
            )
            logger.info(
                f"[{context.pages_scanned}/{context.max_pages}] {url}: "
                f"{verdict.violation_counts.total} issues"
            )
        except Exception as e:
            logger.warning(f"Page failed {url}: {e}")
            context.record_failure(url, str(e))
