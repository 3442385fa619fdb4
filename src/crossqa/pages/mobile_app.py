"""Sample mobile page object: an app with a splash screen and a home screen."""

from __future__ import annotations

import logging
from typing import Any

from appium.webdriver.common.appiumby import AppiumBy

from crossqa.context import ExecutionContext
from crossqa.pages.base import BasePageMobile, Locator

logger = logging.getLogger("crossqa.pages.mobile_app")

SPLASH_ID = "splash_image"
HOME_ID = "home_container"


class MobileApp(BasePageMobile):
    """One installed application, addressed by package (Android) or bundle id (iOS)."""

    def __init__(self, driver: Any, app_id: str, context: ExecutionContext | None = None, **kwargs: Any) -> None:
        super().__init__(driver, context=context, **kwargs)
        self.app_id = app_id

    def _locator(self, element_id: str) -> Locator:
        if self.is_android:
            return (AppiumBy.ID, element_id)
        return (AppiumBy.ACCESSIBILITY_ID, element_id)

    @property
    def splash_screen(self) -> Locator:
        return self._locator(SPLASH_ID)

    @property
    def home_screen(self) -> Locator:
        return self._locator(HOME_ID)

    def is_installed(self) -> bool:
        logger.info("Checking if %s is installed", self.app_id)
        return self.is_app_installed(self.app_id)

    def launch(self) -> bool:
        return self.launch_app(self.app_id)

    def close(self) -> bool:
        return self.close_app(self.app_id)

    def is_fully_loaded(self) -> bool:
        return self.is_app_fully_loaded(self.splash_screen, self.home_screen)

    def install_from_store(self) -> bool:
        """Store installation needs device-side tooling; report success without acting."""
        logger.info("Installing %s from the store (simulated)", self.app_id)
        return True
