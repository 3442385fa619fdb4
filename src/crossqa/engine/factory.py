"""CrossQA Session Factory — builds Playwright and Appium sessions from config.

Playwright and Appium are imported lazily inside the factory methods so that
the rest of CrossQA (config, context, report tree) imports cleanly on
machines without browsers or an Appium client installed.
"""

from __future__ import annotations

import logging
from typing import Any

from crossqa.config import ConfigRegistry
from crossqa.engine.protocols import MobileSession, WebSession
from crossqa.models import (
    BROWSER_ENGINES,
    DEFAULT_ANDROID_DEVICE,
    DEFAULT_APPIUM_URL,
    DEFAULT_BROWSER,
    DEFAULT_IOS_DEVICE,
    DEFAULT_TIMEOUT_SECONDS,
    MOBILE_IOS,
    MOBILE_NEW_COMMAND_TIMEOUT,
)

logger = logging.getLogger("crossqa.engine.factory")


def _close_quietly(label: str, closer: Any) -> None:
    try:
        closer()
    except Exception as exc:
        logger.warning("Failed to close %s during unwind: %s", label, exc)


class PlaywrightAppiumFactory:
    """Production :class:`~crossqa.engine.protocols.SessionFactory`."""

    def __init__(self, config: ConfigRegistry) -> None:
        self._config = config

    # -- Web -----------------------------------------------------------------

    def browser_engine(self) -> str:
        """Resolve the ``browser`` key to a Playwright engine name."""
        name = (self._config.get("browser", DEFAULT_BROWSER) or DEFAULT_BROWSER).strip().lower()
        engine = BROWSER_ENGINES.get(name)
        if engine is None:
            logger.warning("Unknown browser '%s', falling back to chromium", name)
            return "chromium"
        return engine

    def page_timeout_ms(self) -> int:
        return self._config.get_int("timeout", DEFAULT_TIMEOUT_SECONDS) * 1000

    def create_web_session(self) -> WebSession:
        """Start Playwright, launch the configured browser and open a page."""
        from playwright.sync_api import sync_playwright

        engine = self.browser_engine()
        headless = self._config.get_bool("headless", False)
        launch_kwargs: dict[str, Any] = {"headless": headless}
        channel = self._config.get("browserChannel")
        if channel and engine == "chromium":
            launch_kwargs["channel"] = channel

        logger.info("Creating %s browser, headless: %s", engine, headless)

        runtime = sync_playwright().start()
        try:
            browser = getattr(runtime, engine).launch(**launch_kwargs)
        except Exception:
            _close_quietly("playwright", runtime.stop)
            raise

        try:
            page = browser.new_page()
            timeout_ms = self.page_timeout_ms()
            page.set_default_timeout(timeout_ms)
        except Exception:
            _close_quietly("browser", browser.close)
            _close_quietly("playwright", runtime.stop)
            raise

        logger.info("Created Playwright page with timeout: %dms", timeout_ms)
        return WebSession(runtime=runtime, browser=browser, page=page)

    # -- Mobile --------------------------------------------------------------

    def mobile_options(self, platform: str) -> Any:
        """Build the Appium capability options for *platform*."""
        if platform == MOBILE_IOS:
            from appium.options.ios import XCUITestOptions

            options = XCUITestOptions()
            options.device_name = self._config.get("deviceNameIOS", DEFAULT_IOS_DEVICE)
            bundle_id = self._config.get("iosAppBundleId")
            if bundle_id:
                options.bundle_id = bundle_id
        else:
            from appium.options.android import UiAutomator2Options

            options = UiAutomator2Options()
            options.device_name = self._config.get("deviceNameAndroid", DEFAULT_ANDROID_DEVICE)
            app_package = self._config.get("androidAppPackage")
            app_activity = self._config.get("androidAppActivity")
            if app_package:
                options.app_package = app_package
            if app_activity:
                options.app_activity = app_activity

        options.new_command_timeout = MOBILE_NEW_COMMAND_TIMEOUT
        return options

    def create_mobile_session(self, platform: str) -> MobileSession:
        """Open an Appium session for ``android`` or ``ios``."""
        from appium import webdriver

        appium_url = self._config.get("appiumUrl", DEFAULT_APPIUM_URL)
        options = self.mobile_options(platform)
        logger.info(
            "Creating %s driver for device: %s at %s",
            platform, options.device_name, appium_url,
        )
        driver = webdriver.Remote(appium_url, options=options)
        return MobileSession(driver=driver, platform=platform)
