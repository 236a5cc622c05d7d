"""
Headless Chrome session used by the crawler.

One `BrowserSession` lives for the whole scan and hands out one tab at a time
through `open_page()`. Both are context managers so the driver and the tab
are released on every exit path.
"""
import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from selenium import webdriver
from selenium.common.exceptions import (
    JavascriptException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.support.ui import WebDriverWait

from a11yscan.features.scan.errors import (
    AccessibilityEngineError,
    BrowserLaunchError,
    NavigationError,
)

logger = logging.getLogger(__name__)

# Resolves true once no resource has started loading for `quietMs`.
NETWORK_IDLE_SCRIPT = """
const quietMs = arguments[0];
const entries = performance.getEntriesByType('resource') || [];
const now = performance.now();
return entries.every(e => (now - (e.responseEnd || e.startTime)) > quietMs);
"""

NETWORK_IDLE_QUIET_MS = 500


class BrowserPage:
    """A single tab, opened by `BrowserSession.open_page()`."""

    def __init__(self, driver: webdriver.Chrome, handle: str):
        self.driver = driver
        self.handle = handle
        self.closed = False

    def navigate(self, url: str, timeout: float) -> None:
        """Load `url` and wait for the network to go idle, bounded by `timeout` seconds."""
        self.driver.set_page_load_timeout(timeout)
        try:
            self.driver.get(url)
            WebDriverWait(self.driver, timeout).until(
                lambda d: d.execute_script("return document.readyState") == "complete"
            )
            WebDriverWait(self.driver, timeout).until(
                lambda d: d.execute_script(NETWORK_IDLE_SCRIPT, NETWORK_IDLE_QUIET_MS) is True
            )
        except TimeoutException as e:
            raise NavigationError(url, f"Timeout loading page after {timeout:g}s") from e
        except WebDriverException as e:
            raise NavigationError(url, f"WebDriver error: {e.msg or e}") from e

    @property
    def current_url(self) -> str:
        return self.driver.current_url

    def evaluate(self, script: str, *args: Any) -> Any:
        return self.driver.execute_script(script, *args)

    def evaluate_async(self, script: str, *args: Any, timeout: float) -> Any:
        """
        Run a script that reports back through its trailing callback argument.
        Expiry of `timeout` is reported as an engine error for this page.
        """
        self.driver.set_script_timeout(timeout)
        try:
            return self.driver.execute_async_script(script, *args)
        except TimeoutException as e:
            raise AccessibilityEngineError(
                self.current_url, f"Accessibility engine did not answer within {timeout:g}s"
            ) from e
        except JavascriptException as e:
            raise AccessibilityEngineError(self.current_url, f"Script error: {e.msg or e}") from e

    def inject(self, script_source: str) -> None:
        self.driver.execute_script(script_source)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.driver.close()


class BrowserSession:
    def __init__(self, driver: webdriver.Chrome):
        self.driver = driver
        self.home_handle = driver.current_window_handle

    def __enter__(self) -> "BrowserSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def open_page(self) -> Iterator[BrowserPage]:
        self.driver.switch_to.new_window("tab")
        page = BrowserPage(self.driver, self.driver.current_window_handle)
        try:
            yield page
        finally:
            try:
                page.close()
            finally:
                self.driver.switch_to.window(self.home_handle)

    def close(self) -> None:
        logger.info("Closing browser session")
        self.driver.quit()


def build_driver(
    width: int,
    height: int,
    user_agent: str,
    chromedriver_path: Optional[str] = None,
) -> webdriver.Chrome:
    chrome_options = Options()
    chrome_options.add_argument('--headless=new')
    chrome_options.add_argument('--no-sandbox')
    chrome_options.add_argument('--disable-setuid-sandbox')
    chrome_options.add_argument('--disable-dev-shm-usage')
    chrome_options.add_argument('--disable-gpu')
    chrome_options.add_argument(f'--window-size={width},{height}')
    chrome_options.add_argument(f'--user-agent={user_agent}')

    if chromedriver_path:
        driver_service = Service(executable_path=chromedriver_path)
        return webdriver.Chrome(service=driver_service, options=chrome_options)
    return webdriver.Chrome(options=chrome_options)


def launch_browser(
    width: int,
    height: int,
    user_agent: str,
    chromedriver_path: Optional[str] = None,
) -> BrowserSession:
    logger.info("Launching headless Chrome")
    try:
        driver = build_driver(width, height, user_agent, chromedriver_path)
    except WebDriverException as e:
        logger.error(f"Failed to launch browser: {e}")
        raise BrowserLaunchError(f"Failed to launch browser: {e.msg or e}") from e

    try:
        driver.set_window_size(width, height)
        return BrowserSession(driver)
    except WebDriverException as e:
        driver.quit()
        raise BrowserLaunchError(f"Browser started but could not be configured: {e.msg or e}") from e
