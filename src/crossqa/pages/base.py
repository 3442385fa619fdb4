"""Page-object bases for web (Playwright) and mobile (Appium) screens.

Both platforms share one capability set (navigate, click, fill, text,
visibility, screenshot). Platform-specific operations live on the subclass.
Every operation catches and logs automation errors and returns a sentinel
(``False``, ``""`` or ``0``) instead of raising; step bodies turn sentinels
into failures through the assertion facade.
"""

from __future__ import annotations

import abc
import logging
import time
from typing import Any

from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from crossqa.context import ExecutionContext, get_context
from crossqa.models import MOBILE_ANDROID, MOBILE_IOS, MOBILE_WAIT_SECONDS, PLATFORM_MOBILE, PLATFORM_WEB

logger = logging.getLogger("crossqa.pages")

Locator = tuple[str, str]

_LOAD_TIME_SCRIPT = """() => {
    const timing = window.performance.timing;
    return timing.loadEventEnd - timing.navigationStart;
}"""


class BasePage(abc.ABC):
    """Capabilities common to every page object."""

    platform: str = ""

    def __init__(self, context: ExecutionContext | None = None) -> None:
        self.context = context or get_context()

    @property
    def reporter(self) -> Any:
        """The current scenario's report node, if any."""
        return self.context.report_node

    @abc.abstractmethod
    def navigate(self, target: str) -> bool: ...

    @abc.abstractmethod
    def click(self, locator: Any) -> bool: ...

    @abc.abstractmethod
    def fill(self, locator: Any, text: str) -> bool: ...

    @abc.abstractmethod
    def get_text(self, locator: Any) -> str: ...

    @abc.abstractmethod
    def is_visible(self, locator: Any) -> bool: ...

    @abc.abstractmethod
    def screenshot(self, path: str) -> str | None: ...


class BasePageWeb(BasePage):
    """Base for Playwright page objects. Locators are CSS or XPath selectors."""

    platform = PLATFORM_WEB

    def __init__(self, page: Any, context: ExecutionContext | None = None) -> None:
        super().__init__(context)
        self.page = page

    def navigate(self, url: str) -> bool:
        logger.info("Navigating to URL: %s", url)
        try:
            self.page.goto(url)
            return True
        except Exception as exc:
            logger.error("Failed to navigate to %s: %s", url, exc)
            return False

    def get_title(self) -> str:
        try:
            return self.page.title() or ""
        except Exception as exc:
            logger.error("Failed to read page title: %s", exc)
            return ""

    def is_visible(self, selector: str) -> bool:
        try:
            return bool(self.page.is_visible(selector))
        except Exception as exc:
            logger.error("Error checking element visibility: %s: %s", selector, exc)
            return False

    def click(self, selector: str) -> bool:
        logger.info("Clicking element: %s", selector)
        try:
            self.page.click(selector)
            return True
        except Exception as exc:
            logger.error("Failed to click %s: %s", selector, exc)
            return False

    def fill(self, selector: str, text: str) -> bool:
        logger.info("Filling element: %s", selector)
        try:
            self.page.fill(selector, text)
            return True
        except Exception as exc:
            logger.error("Failed to fill %s: %s", selector, exc)
            return False

    def get_text(self, selector: str) -> str:
        try:
            return self.page.text_content(selector) or ""
        except Exception as exc:
            logger.error("Failed to get text from %s: %s", selector, exc)
            return ""

    def wait_for_element(self, selector: str, timeout_ms: int | None = None) -> bool:
        try:
            if timeout_ms is None:
                self.page.wait_for_selector(selector)
            else:
                self.page.wait_for_selector(selector, timeout=timeout_ms)
            return True
        except Exception as exc:
            logger.error("Element did not appear: %s: %s", selector, exc)
            return False

    def measure_page_load_time(self) -> int:
        """Milliseconds from navigation start to the load event; 0 when unavailable."""
        try:
            value = self.page.evaluate(_LOAD_TIME_SCRIPT)
        except Exception as exc:
            logger.error("Failed to measure page load time: %s", exc)
            return 0
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 0
        return int(value)

    def is_visible_in_any_frame(self, selector: str) -> bool:
        """Check *selector* in every frame of the page, then in the main page."""
        try:
            frames = list(self.page.frames)
        except Exception as exc:
            logger.debug("Could not list frames: %s", exc)
            frames = []
        if len(frames) > 1:
            for frame in frames:
                try:
                    if frame.is_visible(selector):
                        logger.info("Found %s in frame: %s", selector, frame.name)
                        return True
                except Exception as exc:
                    logger.debug("Failed to check frame %s: %s", getattr(frame, "name", "?"), exc)
        return self.is_visible(selector)

    def screenshot(self, path: str) -> str | None:
        try:
            self.page.screenshot(path=path)
            return path
        except Exception as exc:
            logger.error("Failed to take screenshot: %s", exc)
            return None


class BasePageMobile(BasePage):
    """Base for Appium page objects. Locators are ``(AppiumBy.X, value)`` tuples."""

    platform = PLATFORM_MOBILE

    def __init__(
        self,
        driver: Any,
        context: ExecutionContext | None = None,
        wait_seconds: int = MOBILE_WAIT_SECONDS,
    ) -> None:
        super().__init__(context)
        self.driver = driver
        self.wait = WebDriverWait(driver, wait_seconds)
        self.last_load_time_ms: int = 0

    @property
    def mobile_platform(self) -> str:
        caps = getattr(self.driver, "capabilities", None) or {}
        name = str(caps.get("platformName", "")).lower()
        if name == MOBILE_IOS:
            return MOBILE_IOS
        if name == MOBILE_ANDROID:
            return MOBILE_ANDROID
        return self.context.get("mobile_platform") or MOBILE_ANDROID

    @property
    def is_android(self) -> bool:
        return self.mobile_platform == MOBILE_ANDROID

    def navigate(self, deep_link: str) -> bool:
        logger.info("Opening deep link: %s", deep_link)
        try:
            self.driver.get(deep_link)
            return True
        except Exception as exc:
            logger.error("Failed to open %s: %s", deep_link, exc)
            return False

    def is_visible(self, locator: Locator) -> bool:
        try:
            return self.wait.until(EC.visibility_of_element_located(locator)) is not None
        except Exception as exc:
            logger.error("Element not visible: %s: %s", locator, exc)
            return False

    def wait_for_element(self, locator: Locator) -> bool:
        return self.is_visible(locator)

    def click(self, locator: Locator) -> bool:
        logger.info("Clicking element: %s", locator)
        try:
            self.wait.until(EC.element_to_be_clickable(locator)).click()
            return True
        except Exception as exc:
            logger.error("Failed to click element: %s: %s", locator, exc)
            return False

    def fill(self, locator: Locator, text: str) -> bool:
        logger.info("Sending text to element: %s", locator)
        try:
            element = self.wait.until(EC.visibility_of_element_located(locator))
            element.clear()
            element.send_keys(text)
            return True
        except Exception as exc:
            logger.error("Failed to send keys to element: %s: %s", locator, exc)
            return False

    def get_text(self, locator: Locator) -> str:
        try:
            return self.wait.until(EC.visibility_of_element_located(locator)).text or ""
        except Exception as exc:
            logger.error("Failed to get text from element: %s: %s", locator, exc)
            return ""

    def is_app_installed(self, app_id: str) -> bool:
        try:
            return bool(self.driver.is_app_installed(app_id))
        except Exception as exc:
            logger.error("Failed to check if app is installed: %s: %s", app_id, exc)
            return False

    def launch_app(self, app_id: str) -> bool:
        try:
            self.driver.activate_app(app_id)
            self.context.put("currentAppId", app_id)
            logger.info("Launched app: %s", app_id)
            return True
        except Exception as exc:
            logger.error("Failed to launch app: %s: %s", app_id, exc)
            return False

    def close_app(self, app_id: str | None = None) -> bool:
        try:
            if app_id is None:
                app_id = self.driver.current_package if self.is_android else self.context.get("currentAppId")
            if not app_id:
                logger.error("Failed to close app: no application id known")
                return False
            self.driver.terminate_app(app_id)
            logger.info("Closed app: %s", app_id)
            return True
        except Exception as exc:
            logger.error("Failed to close app: %s", exc)
            return False

    def app_state(self, app_id: str) -> int:
        """Appium application state (0 not installed, 1 not running, 3 background, 4 foreground); -1 on error."""
        try:
            return int(self.driver.query_app_state(app_id))
        except Exception as exc:
            logger.error("Failed to query app state: %s: %s", app_id, exc)
            return -1

    def is_app_fully_loaded(self, splash: Locator, home: Locator) -> bool:
        """Wait for the splash screen and then the home screen; record the load time."""
        start = time.monotonic()
        try:
            self.wait.until(EC.visibility_of_element_located(splash))
            self.wait.until(EC.visibility_of_element_located(home))
        except Exception as exc:
            logger.error("App failed to load completely: %s", exc)
            return False
        self.last_load_time_ms = int((time.monotonic() - start) * 1000)
        logger.info("App fully loaded in %d ms", self.last_load_time_ms)
        return True

    def screenshot(self, path: str) -> str | None:
        try:
            return path if self.driver.get_screenshot_as_file(path) else None
        except Exception as exc:
            logger.error("Failed to take screenshot: %s", exc)
            return None
