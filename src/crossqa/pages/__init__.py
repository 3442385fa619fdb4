"""Page objects: platform bases and sample pages."""

from crossqa.pages.base import BasePage, BasePageMobile, BasePageWeb, Locator
from crossqa.pages.home_page import HomePage
from crossqa.pages.mobile_app import MobileApp

__all__ = [
    "BasePage",
    "BasePageMobile",
    "BasePageWeb",
    "HomePage",
    "Locator",
    "MobileApp",
]
