"""Sample web page object: a portal home page with a login form."""

from __future__ import annotations

import logging

from crossqa.pages.base import BasePageWeb

logger = logging.getLogger("crossqa.pages.home_page")


class HomePage(BasePageWeb):
    """Home page with a logo and an identification/password login form.

    The login form is often rendered inside an iframe, so the field checks
    look through every frame before falling back to the main page.
    """

    LOGO = "img"
    IDENTIFICATION_FIELD = "input[name='IdNumTextBox']"
    PASSWORD_FIELD = "input[name='PasswordTextBox']"

    def open(self, url: str) -> bool:
        logger.info("Opening home page: %s", url)
        return self.navigate(url)

    def is_logo_visible(self, selector: str | None = None) -> bool:
        return self.is_visible(selector or self.LOGO)

    def is_identification_field_visible(self, selector: str | None = None) -> bool:
        return self.is_visible_in_any_frame(selector or self.IDENTIFICATION_FIELD)

    def is_password_field_visible(self, selector: str | None = None) -> bool:
        return self.is_visible_in_any_frame(selector or self.PASSWORD_FIELD)

    def page_load_time(self) -> int:
        load_time = self.measure_page_load_time()
        logger.info("Page load time: %d ms", load_time)
        return load_time
