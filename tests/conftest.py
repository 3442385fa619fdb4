"""Shared fixtures for CrossQA unit tests."""

from __future__ import annotations

import threading
import time
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from crossqa.config import ConfigRegistry, reset_config
from crossqa.context import clear_context
from crossqa.engine.lifecycle import LifecycleOrchestrator
from crossqa.engine.protocols import MobileSession, SimpleScenario, WebSession
from crossqa.engine.report_sink import HtmlReport
from crossqa.engine.report_tree import ReportTreeBuilder
from crossqa.engine.session_pool import SessionPool


# ---------------------------------------------------------------------------
# Fake session factory
# ---------------------------------------------------------------------------

class FakeSessionFactory:
    """Counting stand-in for PlaywrightAppiumFactory.

    Every session is built from MagicMocks. ``delay`` widens race windows in
    concurrency tests; ``fail_web`` / ``fail_mobile`` make construction raise.
    """

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.fail_web = False
        self.fail_mobile = False
        self.web_sessions: list[WebSession] = []
        self.mobile_sessions: list[MobileSession] = []
        self.mobile_platforms: list[str] = []
        self._lock = threading.Lock()

    def create_web_session(self) -> WebSession:
        if self.delay:
            time.sleep(self.delay)
        if self.fail_web:
            raise RuntimeError("browser binary not found")
        page = MagicMock(name="page")
        page.title.return_value = "Example Domain"
        session = WebSession(runtime=MagicMock(name="runtime"), browser=MagicMock(name="browser"), page=page)
        with self._lock:
            self.web_sessions.append(session)
        return session

    def create_mobile_session(self, platform: str) -> MobileSession:
        if self.delay:
            time.sleep(self.delay)
        if self.fail_mobile:
            raise RuntimeError("appium server unreachable")
        driver = MagicMock(name=f"{platform}_driver")
        session = MobileSession(driver=driver, platform=platform)
        with self._lock:
            self.mobile_sessions.append(session)
            self.mobile_platforms.append(platform)
        return session


# ---------------------------------------------------------------------------
# Fixture: isolate per-thread context and the process-wide registry
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_globals():
    clear_context()
    reset_config()
    yield
    clear_context()
    reset_config()


# ---------------------------------------------------------------------------
# Fixture: config directory with a defaults file and a staging overlay
# ---------------------------------------------------------------------------

@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    cdir = tmp_path / "config"
    cdir.mkdir()
    (cdir / "config.properties").write_text(
        "# defaults\n"
        "browser=chrome\n"
        "headless=true\n"
        "timeout=30\n"
        "appiumUrl=http://localhost:4723\n"
        "deviceNameAndroid=Galaxy S24 Emulator\n"
        "deviceNameIOS=iPhone 14\n",
        encoding="utf-8",
    )
    (cdir / "staging.properties").write_text(
        "timeout=45\nheadless=false\n",
        encoding="utf-8",
    )
    return cdir


@pytest.fixture
def registry(config_dir: Path) -> ConfigRegistry:
    return ConfigRegistry(config_dir, environ={})


# ---------------------------------------------------------------------------
# Fixture: pool and orchestrator wired to the fake factory
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_factory() -> FakeSessionFactory:
    return FakeSessionFactory()


@pytest.fixture
def slow_factory() -> FakeSessionFactory:
    """Factory whose constructions take long enough for threads to collide."""
    return FakeSessionFactory(delay=0.05)


@pytest.fixture
def pool(fake_factory: FakeSessionFactory) -> SessionPool:
    return SessionPool(fake_factory)


@pytest.fixture
def orchestrator(registry: ConfigRegistry, fake_factory: FakeSessionFactory, tmp_path: Path) -> LifecycleOrchestrator:
    orch = LifecycleOrchestrator(
        registry,
        SessionPool(fake_factory),
        ReportTreeBuilder(HtmlReport()),
        reports_dir=tmp_path / "target",
    )
    orch.before_all()
    return orch


def _make_scenario(**overrides) -> SimpleScenario:
    """Create a SimpleScenario with sensible defaults, overridable per test."""
    defaults = {
        "uri": "features/web/home_page.feature",
        "name": "Home page loads",
        "tags": {"@web"},
        "status": "passed",
    }
    defaults.update(overrides)
    return SimpleScenario(**defaults)


@pytest.fixture
def make_scenario():
    return _make_scenario
