"""CrossQA Lifecycle Orchestrator — binds BDD runner events to the core.

Event order per run::

    before_all
      before_scenario -> (before_step -> after_step)* -> after_scenario   (per scenario)
    after_all

Web scenarios share one browser per feature file: it is opened by the first
scenario of the feature, kept across the following scenarios, and closed at
``after_all`` or by an explicit close-browser step. Mobile scenarios get a
fresh driver, acquired lazily on the first step that needs it and released
at the end of the scenario.

The orchestrator is runner-agnostic; ``crossqa.bdd`` adapts behave's hooks
to it.
"""

from __future__ import annotations

import logging
import platform as _platform
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from crossqa.config import ConfigRegistry
from crossqa.context import ExecutionContext, get_context
from crossqa.engine.assertions import AssertionFacade
from crossqa.engine.factory import PlaywrightAppiumFactory
from crossqa.engine.protocols import ScenarioHandle, SessionFactory
from crossqa.engine.report_sink import HtmlReport, ReportNode
from crossqa.engine.report_tree import ReportTreeBuilder, format_feature_name
from crossqa.engine.session_pool import AcquisitionError, SessionPool
from crossqa.models import (
    DEFAULT_ANDROID_DEVICE,
    DEFAULT_BROWSER,
    DEFAULT_IOS_DEVICE,
    DEFAULT_REPORTS_DIR,
    EXTENT_REPORTS_SUBDIR,
    MOBILE_ANDROID,
    MOBILE_IOS,
    PLATFORM_MOBILE,
    PLATFORM_WEB,
    REPORT_PREFIX,
    SCREENSHOTS_SUBDIR,
    STATUS_FAIL,
    STATUS_INFO,
    ScenarioKey,
    timestamp,
)

logger = logging.getLogger("crossqa.engine.lifecycle")


def normalize_tags(tags: Iterable[str]) -> list[str]:
    """Strip a leading ``@`` from each tag, keeping order and dropping duplicates."""
    seen: list[str] = []
    for tag in tags:
        clean = tag[1:] if tag.startswith("@") else tag
        if clean and clean not in seen:
            seen.append(clean)
    return seen


class LifecycleOrchestrator:
    """Drives the session pool, report tree and execution context from runner events."""

    def __init__(
        self,
        config: ConfigRegistry,
        pool: SessionPool,
        tree: ReportTreeBuilder,
        context_provider: Callable[[], ExecutionContext] = get_context,
        reports_dir: Path | str | None = None,
    ) -> None:
        """
        Args:
            config: Resolved configuration registry.
            pool: Session pool shared by every worker thread.
            tree: Report tree builder wrapping the HTML sink.
            context_provider: Returns the calling thread's execution context.
            reports_dir: Root for report and screenshot artifacts
                (``reportsDir`` config key, ``target`` by default).
        """
        self._config = config
        self._pool = pool
        self._tree = tree
        self._context_provider = context_provider
        self._reports_dir = Path(reports_dir or config.get("reportsDir", DEFAULT_REPORTS_DIR))
        self.assertions = AssertionFacade(
            pool,
            screenshot_dir=self._reports_dir / SCREENSHOTS_SUBDIR,
            context_provider=context_provider,
        )
        self.report_path: Path | None = None

    @classmethod
    def from_config(
        cls,
        config: ConfigRegistry,
        factory: SessionFactory | None = None,
        reports_dir: Path | str | None = None,
    ) -> LifecycleOrchestrator:
        """Wire the default pool, HTML sink and tree around *config*."""
        pool = SessionPool(factory or PlaywrightAppiumFactory(config))
        tree = ReportTreeBuilder(HtmlReport())
        return cls(config, pool, tree, reports_dir=reports_dir)

    # -- Accessors -----------------------------------------------------------

    @property
    def config(self) -> ConfigRegistry:
        return self._config

    @property
    def pool(self) -> SessionPool:
        return self._pool

    @property
    def tree(self) -> ReportTreeBuilder:
        return self._tree

    @property
    def reports_dir(self) -> Path:
        return self._reports_dir

    @property
    def context(self) -> ExecutionContext:
        return self._context_provider()

    # -- Run -----------------------------------------------------------------

    def before_all(self) -> Path:
        """Prepare the timestamped report file and attach it to the sink."""
        report_dir = self._reports_dir / EXTENT_REPORTS_SUBDIR
        report_dir.mkdir(parents=True, exist_ok=True)
        stem = f"{REPORT_PREFIX}{timestamp()}"
        worker = self._config.get("workerId")
        if worker:
            stem = f"{stem}_{worker}"
        self.report_path = report_dir / f"{stem}.html"

        sink = self._tree.sink
        sink.attach_reporter(self.report_path)
        sink.set_system_info("Operating System", _platform.platform())
        sink.set_system_info("Python", _platform.python_version())
        sink.set_system_info("Browser", self._config.get("browser", DEFAULT_BROWSER))
        if self._config.env:
            sink.set_system_info("Environment", self._config.env)

        logger.info("Report initialized: %s", self.report_path)
        return self.report_path

    def after_all(self) -> None:
        """Release every session, then write the report."""
        self._pool.release_all_features()
        self._pool.release_all_threads()
        self._pool.release_all_mobile()
        self._tree.flush()
        logger.info(
            "Run complete: %d feature node(s), %d scenario(s), sessions built: %s",
            self._tree.feature_count,
            self._tree.opened_count,
            self._pool.construction_counts,
        )

    # -- Scenario ------------------------------------------------------------

    def before_scenario(self, scenario: ScenarioHandle) -> ReportNode:
        tags = normalize_tags(scenario.tags)
        lowered = {t.lower() for t in tags}
        if PLATFORM_WEB in lowered:
            return self._before_web(scenario, tags)
        if PLATFORM_MOBILE in lowered:
            return self._before_mobile(scenario, tags, lowered)

        node = self._open_node(scenario, tags, scenario.name)
        logger.info("Starting scenario without platform tag: %s", scenario.name)
        return node

    def _before_web(self, scenario: ScenarioHandle, tags: list[str]) -> ReportNode:
        ctx = self._context_provider()
        ctx.set_platform(PLATFORM_WEB)
        feature_uri = scenario.uri

        node = self._open_node(scenario, tags, scenario.name)

        if not self._pool.has_for_feature(feature_uri):
            logger.info("Initializing browser for feature: %s", feature_uri)
            try:
                self._pool.acquire_for_feature(feature_uri)
            except AcquisitionError as exc:
                node.mark_fail(f"Browser could not be started: {exc}")
                raise
        else:
            logger.info("Browser already initialized for feature: %s", feature_uri)

        logger.info("Starting web scenario: %s in feature: %s", scenario.name, feature_uri)
        return node

    def _before_mobile(self, scenario: ScenarioHandle, tags: list[str], lowered: set[str]) -> ReportNode:
        ctx = self._context_provider()
        ctx.set_platform(PLATFORM_MOBILE)

        if MOBILE_IOS in lowered:
            mobile_platform = MOBILE_IOS
        elif MOBILE_ANDROID in lowered:
            mobile_platform = MOBILE_ANDROID
        else:
            mobile_platform = (self._config.get("mobilePlatform", MOBILE_ANDROID) or MOBILE_ANDROID).lower()

        if mobile_platform == MOBILE_IOS:
            device_name = self._config.get("deviceNameIOS", DEFAULT_IOS_DEVICE)
        else:
            device_name = self._config.get("deviceNameAndroid", DEFAULT_ANDROID_DEVICE)
        ctx.set_device(device_name)
        ctx.put("mobile_platform", mobile_platform)

        node = self._open_node(scenario, tags, f"{scenario.name} ({device_name})")
        logger.info("Starting mobile scenario: %s on device: %s", scenario.name, device_name)
        return node

    def _open_node(self, scenario: ScenarioHandle, tags: list[str], display_name: str) -> ReportNode:
        ctx = self._context_provider()
        feature_uri = scenario.uri
        key = ScenarioKey(feature_uri, scenario.name)

        feature_node = self._tree.get_or_create_feature(feature_uri, format_feature_name(feature_uri))
        node, created = self._tree.open_scenario(key, feature_node, display_name)
        if created:
            node.assign_category(*tags)

        ctx.set_scenario(scenario)
        ctx.set_report_node(node)
        return node

    def after_scenario(self, scenario: ScenarioHandle) -> None:
        """Record the scenario result, release per-scenario sessions, reset the context."""
        ctx = self._context_provider()
        try:
            node = ctx.report_node
            if node is not None:
                if scenario.is_failed:
                    node.mark_fail("Scenario failed")
                    logger.error("Scenario failed: %s", scenario.name)
                elif scenario.status == "skipped":
                    node.mark_skip("Scenario skipped")
                else:
                    node.mark_pass("Scenario passed")

            if ctx.platform == PLATFORM_MOBILE:
                self._pool.release_mobile()
                logger.info("Mobile scenario completed with status: %s", scenario.status)
            else:
                logger.info("Web scenario completed with status: %s", scenario.status)
        finally:
            ctx.reset()

    # -- Step ----------------------------------------------------------------

    def before_step(self, step_text: str) -> None:
        if not step_text:
            return
        self._tree.log_step(self._context_provider().report_node, STATUS_INFO, f"STEP: {step_text}")
        logger.info("Executing step: %s", step_text)

    def after_step(self, step_text: str, failed: bool, error: Any = None) -> None:
        if not failed or not step_text:
            return
        message = f"FAILED STEP: {step_text}"
        if error:
            message = f"{message} ({error})"
        self._tree.log_step(self._context_provider().report_node, STATUS_FAIL, message)

    # -- Sessions for step bodies --------------------------------------------

    def _feature_uri(self, scenario: ScenarioHandle | None) -> str | None:
        if scenario is None:
            scenario = self._context_provider().scenario
        return getattr(scenario, "uri", None) or None

    def page_for(self, scenario: ScenarioHandle | None = None) -> Any:
        """Return the browser page for the current (or given) scenario's feature.

        Re-opens the feature browser if an earlier step closed it. Falls back
        to the thread-scoped browser when no feature URI is known.
        """
        feature_uri = self._feature_uri(scenario)
        if feature_uri:
            return self._pool.acquire_for_feature(feature_uri)
        return self._pool.get_page()

    def mobile_driver(self) -> Any:
        """Return the calling thread's mobile driver, creating it on first use."""
        return self._pool.acquire_mobile()

    def browser_open(self, scenario: ScenarioHandle | None = None) -> bool:
        feature_uri = self._feature_uri(scenario)
        if feature_uri and self._pool.has_for_feature(feature_uri):
            return True
        return self._pool.thread_page() is not None

    def close_browser(self, scenario: ScenarioHandle | None = None) -> None:
        """Close the browser for the current feature (or this thread's browser)."""
        feature_uri = self._feature_uri(scenario)
        if feature_uri and self._pool.has_for_feature(feature_uri):
            logger.info("Closing browser for feature: %s", feature_uri)
            self._pool.release_for_feature(feature_uri)
        else:
            logger.info("Closing thread browser")
            self._pool.release_thread()
