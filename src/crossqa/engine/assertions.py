"""CrossQA Assertion Facade — assertions that report themselves.

Every assertion mirrors its outcome into the current scenario's report node.
On failure a screenshot of the current web page or mobile screen is saved
under the screenshots directory, attached to the ``fail`` entry, and a
:class:`VerificationError` is raised so the BDD runner fails the scenario.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from crossqa.context import ExecutionContext, get_context
from crossqa.models import (
    PLATFORM_MOBILE,
    PLATFORM_WEB,
    SCREENSHOT_PREFIX,
    STATUS_FAIL,
    STATUS_PASS,
    timestamp,
)

logger = logging.getLogger("crossqa.engine.assertions")


class VerificationError(AssertionError):
    """A CrossQA assertion failed. Carries the screenshot path, if one was taken."""

    def __init__(self, message: str, attachment: str | None = None) -> None:
        super().__init__(message)
        self.attachment = attachment


@dataclasses.dataclass
class Outcome:
    """Result of evaluating one assertion, before it is reported."""

    passed: bool
    message: str
    attachment: str | None = None


class AssertionFacade:
    """Evaluates predicates and couples the result to the report.

    Usage::

        facade.assert_contains(page.title(), "Example",
                               "Title mentions Example",
                               "Title does not mention Example")
    """

    def __init__(
        self,
        pool: Any,
        screenshot_dir: Path | str,
        context_provider: Callable[[], ExecutionContext] = get_context,
    ) -> None:
        """
        Args:
            pool: The ``SessionPool`` to take screenshots from.
            screenshot_dir: Where failure screenshots are written. Created now.
            context_provider: Returns the calling thread's execution context.
        """
        self._pool = pool
        self._context_provider = context_provider
        self._screenshot_dir = Path(screenshot_dir)
        self._screenshots_enabled = True
        try:
            self._screenshot_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("Failed to create screenshots directory %s: %s", self._screenshot_dir, exc)
            self._screenshots_enabled = False

    @property
    def screenshot_dir(self) -> Path:
        return self._screenshot_dir

    # -- Assertions ----------------------------------------------------------

    def assert_true(
        self,
        condition: bool,
        pass_message: str,
        fail_message: str,
        expected: bool = True,
    ) -> Outcome:
        """Assert *condition* equals *expected* (``True`` unless told otherwise)."""
        return self._check(bool(condition) == expected, pass_message, fail_message)

    def assert_equals(self, actual: Any, expected: Any, pass_message: str, fail_message: str) -> Outcome:
        detail = f"{fail_message}: expected [{expected}] but found [{actual}]"
        return self._check(actual == expected, pass_message, detail)

    def assert_contains(self, haystack: str | None, needle: str, pass_message: str, fail_message: str) -> Outcome:
        detail = f"{fail_message}: expected [{needle}] to be contained in [{haystack}]"
        return self._check(haystack is not None and needle in haystack, pass_message, detail)

    def assert_less_than(self, actual: float, limit: float, pass_message: str, fail_message: str) -> Outcome:
        detail = f"{fail_message}: expected [{actual}] to be less than [{limit}]"
        return self._check(actual < limit, pass_message, detail)

    # -- Reporting -----------------------------------------------------------

    def _check(self, passed: bool, pass_message: str, fail_message: str) -> Outcome:
        node = self._context_provider().report_node

        if passed:
            outcome = Outcome(passed=True, message=pass_message)
            self._log(node, STATUS_PASS, pass_message)
            logger.info(pass_message)
            return outcome

        outcome = Outcome(passed=False, message=fail_message, attachment=self.capture_screenshot())
        self._log(node, STATUS_FAIL, fail_message, outcome.attachment)
        logger.error(fail_message)
        raise VerificationError(fail_message, attachment=outcome.attachment)

    @staticmethod
    def _log(node: Any, status: str, message: str, attachment: str | None = None) -> None:
        if node is None:
            return
        try:
            node.log(status, message, attachment)
        except Exception as exc:
            logger.error("Failed to write report entry '%s': %s", message, exc)

    # -- Screenshots ---------------------------------------------------------

    def _reserve_path(self) -> Path:
        """Claim a fresh ``screenshot_<ts>[_n].png`` name."""
        stamp = timestamp()
        suffix = 0
        while True:
            name = f"{SCREENSHOT_PREFIX}{stamp}{'' if suffix == 0 else f'_{suffix}'}.png"
            path = self._screenshot_dir / name
            try:
                with open(path, "xb"):
                    return path
            except FileExistsError:
                suffix += 1

    def capture_screenshot(self) -> str | None:
        """Save a screenshot of the current platform's screen; ``None`` on any failure."""
        if not self._screenshots_enabled:
            return None

        ctx = self._context_provider()
        path: Path | None = None
        try:
            if ctx.platform == PLATFORM_MOBILE:
                driver = self._pool.mobile_driver()
                if driver is None:
                    logger.warning("No mobile driver on this thread, skipping screenshot")
                    return None
                path = self._reserve_path()
                self._mobile_screenshot(driver, path)
                logger.info("Captured mobile screenshot: %s", path)
                return str(path)

            if ctx.platform == PLATFORM_WEB:
                page = self._current_page(ctx)
                if page is None:
                    logger.warning("No browser page for this scenario, skipping screenshot")
                    return None
                path = self._reserve_path()
                page.screenshot(path=str(path))
                logger.info("Captured web screenshot: %s", path)
                return str(path)
        except Exception as exc:
            logger.error("Failed to capture screenshot: %s", exc)
            if path is not None:
                path.unlink(missing_ok=True)
            return None

        logger.warning("Unknown platform '%s', skipping screenshot", ctx.platform)
        return None

    def _current_page(self, ctx: ExecutionContext) -> Any | None:
        uri = getattr(ctx.scenario, "uri", None)
        if uri:
            page = self._pool.page_for_feature(uri)
            if page is not None:
                return page
        return self._pool.thread_page()

    @staticmethod
    def _mobile_screenshot(driver: Any, path: Path) -> None:
        if not driver.get_screenshot_as_file(str(path)):
            raise RuntimeError("driver did not write a screenshot")
