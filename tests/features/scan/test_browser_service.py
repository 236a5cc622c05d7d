import pytest
from unittest.mock import MagicMock, patch
from selenium.common.exceptions import (
    JavascriptException,
    TimeoutException,
    WebDriverException,
)

from a11yscan.features.scan.errors import (
    AccessibilityEngineError,
    BrowserLaunchError,
    NavigationError,
)
from a11yscan.features.scan.services.browser.browser_service import (
    BrowserPage,
    BrowserSession,
    launch_browser,
)


@pytest.fixture
def mock_driver():
    driver = MagicMock()
    driver.current_window_handle = "home"
    driver.current_url = "https://example.com/"
    driver.execute_script.side_effect = (
        lambda script, *args: "complete" if "readyState" in script else True
    )
    return driver


class TestBrowserPage:
    def test_navigate_waits_for_load(self, mock_driver):
        page = BrowserPage(mock_driver, "tab-1")

        page.navigate("https://example.com/", timeout=30)

        mock_driver.set_page_load_timeout.assert_called_once_with(30)
        mock_driver.get.assert_called_once_with("https://example.com/")

    def test_navigate_timeout_is_a_navigation_error(self, mock_driver):
        mock_driver.get.side_effect = TimeoutException("page load")
        page = BrowserPage(mock_driver, "tab-1")

        with pytest.raises(NavigationError) as exc_info:
            page.navigate("https://slow.example.com/", timeout=30)
        assert exc_info.value.url == "https://slow.example.com/"
        assert "Timeout" in exc_info.value.message

    def test_navigate_driver_error_is_a_navigation_error(self, mock_driver):
        mock_driver.get.side_effect = WebDriverException("net::ERR_NAME_NOT_RESOLVED")

        with pytest.raises(NavigationError):
            BrowserPage(mock_driver, "tab-1").navigate("https://nowhere.invalid/", timeout=30)

    def test_evaluate_async_timeout(self, mock_driver):
        mock_driver.execute_async_script.side_effect = TimeoutException("script timeout")
        page = BrowserPage(mock_driver, "tab-1")

        with pytest.raises(AccessibilityEngineError) as exc_info:
            page.evaluate_async("done()", timeout=60)
        mock_driver.set_script_timeout.assert_called_once_with(60)
        assert "60s" in exc_info.value.message

    def test_evaluate_async_script_error(self, mock_driver):
        mock_driver.execute_async_script.side_effect = JavascriptException("axe is undefined")

        with pytest.raises(AccessibilityEngineError):
            BrowserPage(mock_driver, "tab-1").evaluate_async("done()", timeout=60)

    def test_close_is_idempotent(self, mock_driver):
        page = BrowserPage(mock_driver, "tab-1")
        page.close()
        page.close()

        mock_driver.close.assert_called_once()


class TestBrowserSession:
    def test_open_page_closes_tab_and_returns_home(self, mock_driver):
        session = BrowserSession(mock_driver)

        with session.open_page() as page:
            assert isinstance(page, BrowserPage)

        mock_driver.switch_to.new_window.assert_called_once_with("tab")
        mock_driver.close.assert_called_once()
        mock_driver.switch_to.window.assert_called_once_with("home")

    def test_open_page_closes_tab_on_error(self, mock_driver):
        session = BrowserSession(mock_driver)

        with pytest.raises(NavigationError):
            with session.open_page():
                raise NavigationError("https://example.com/", "boom")

        mock_driver.close.assert_called_once()
        mock_driver.switch_to.window.assert_called_once_with("home")

    def test_context_manager_quits_driver(self, mock_driver):
        with BrowserSession(mock_driver):
            pass

        mock_driver.quit.assert_called_once()


class TestLaunchBrowser:
    def test_launch_failure(self):
        with patch(
            "a11yscan.features.scan.services.browser.browser_service.build_driver",
            side_effect=WebDriverException("chrome not reachable"),
        ):
            with pytest.raises(BrowserLaunchError):
                launch_browser(1280, 800, "test-agent")

    def test_driver_quit_when_configuration_fails(self, mock_driver):
        mock_driver.set_window_size.side_effect = WebDriverException("window gone")

        with patch(
            "a11yscan.features.scan.services.browser.browser_service.build_driver",
            return_value=mock_driver,
        ):
            with pytest.raises(BrowserLaunchError):
                launch_browser(1280, 800, "test-agent")
        mock_driver.quit.assert_called_once()

    def test_launch_returns_session(self, mock_driver):
        with patch(
            "a11yscan.features.scan.services.browser.browser_service.build_driver",
            return_value=mock_driver,
        ):
            session = launch_browser(1280, 800, "test-agent")

        assert isinstance(session, BrowserSession)
        mock_driver.set_window_size.assert_called_once_with(1280, 800)
