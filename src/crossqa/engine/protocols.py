"""Contracts between the CrossQA core and its external collaborators.

The BDD runner is seen only through :class:`ScenarioHandle`; the automation
libraries are seen only through :class:`SessionFactory` and the session
records it returns. Consumers may inject their own factory (for instance a
remote grid, or a counting fake in tests) and the pool handles the rest.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Protocol, runtime_checkable


@dataclasses.dataclass
class WebSession:
    """A live browser session: runtime owns browser, browser owns page."""

    runtime: Any  # playwright.sync_api.Playwright
    browser: Any  # playwright.sync_api.Browser
    page: Any  # playwright.sync_api.Page


@dataclasses.dataclass
class MobileSession:
    """A live Appium session on one device."""

    driver: Any  # appium.webdriver.Remote
    platform: str  # android | ios


@runtime_checkable
class ScenarioHandle(Protocol):
    """What the core needs to know about the scenario being run."""

    @property
    def uri(self) -> str: ...

    @property
    def name(self) -> str: ...

    @property
    def tags(self) -> set[str]: ...

    @property
    def status(self) -> str: ...

    @property
    def is_failed(self) -> bool: ...


@runtime_checkable
class SessionFactory(Protocol):
    """Builds automation sessions.

    ``PlaywrightAppiumFactory`` is the production implementation. Any error
    raised here is wrapped by the pool into an ``AcquisitionError``.
    """

    def create_web_session(self) -> WebSession: ...

    def create_mobile_session(self, platform: str) -> MobileSession: ...


@dataclasses.dataclass
class SimpleScenario:
    """Plain :class:`ScenarioHandle` for callers that are not driven by behave."""

    uri: str
    name: str
    tags: set[str] = dataclasses.field(default_factory=set)
    status: str = "untested"

    @property
    def is_failed(self) -> bool:
        return self.status == "failed"
