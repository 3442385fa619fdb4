"""CrossQA Session Pool — keyed caches of automation sessions.

Three independent caches:

- web sessions keyed by feature URI (shared by every scenario of a feature),
- web sessions keyed by thread id (for callers outside the feature flow),
- mobile sessions keyed by thread id.

A read that finds an entry takes no lock. A miss takes the cache lock,
re-checks, then constructs. Release removes the entry under the lock and
closes it outside the lock; release never raises and releasing an unknown
key is a no-op.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from crossqa.context import ExecutionContext, get_context
from crossqa.engine.protocols import MobileSession, SessionFactory, WebSession
from crossqa.models import MOBILE_ANDROID, MOBILE_IOS

logger = logging.getLogger("crossqa.engine.session_pool")

KIND_WEB_FEATURE = "web_feature"
KIND_WEB_THREAD = "web_thread"
KIND_MOBILE = "mobile"


class AcquisitionError(RuntimeError):
    """Raised when an automation session cannot be constructed."""

    pass


def _guarded(label: str, action: Callable[[], Any]) -> bool:
    """Run one close step; log and swallow any failure."""
    try:
        action()
        return True
    except Exception as exc:
        logger.error("Error closing %s: %s", label, exc)
        return False


def close_web_session(session: WebSession, owner: str) -> None:
    """Close page, then browser, then runtime. Each step runs regardless of the others."""
    if session.page is not None:
        if _guarded(f"page for {owner}", session.page.close):
            logger.info("Closed page for %s", owner)
    if session.browser is not None:
        if _guarded(f"browser for {owner}", session.browser.close):
            logger.info("Closed browser for %s", owner)
    if session.runtime is not None:
        if _guarded(f"playwright for {owner}", session.runtime.stop):
            logger.info("Closed playwright for %s", owner)


def close_mobile_session(session: MobileSession, owner: str) -> None:
    if _guarded(f"mobile driver for {owner}", session.driver.quit):
        logger.info("Closed %s driver for %s", session.platform, owner)


class SessionPool:
    """Acquire/release automation sessions at feature and thread scope.

    Usage::

        pool = SessionPool(PlaywrightAppiumFactory(config))
        page = pool.acquire_for_feature("features/web/home.feature")
        ...
        pool.release_all_features()
    """

    def __init__(
        self,
        factory: SessionFactory,
        context_provider: Callable[[], ExecutionContext] = get_context,
    ) -> None:
        self._factory = factory
        self._context_provider = context_provider

        self._feature_sessions: dict[str, WebSession] = {}
        self._feature_lock = threading.Lock()

        self._thread_sessions: dict[int, WebSession] = {}
        self._thread_lock = threading.Lock()

        self._mobile_sessions: dict[int, MobileSession] = {}
        self._mobile_lock = threading.Lock()

        self._counts_lock = threading.Lock()
        self.construction_counts: dict[str, int] = {
            KIND_WEB_FEATURE: 0,
            KIND_WEB_THREAD: 0,
            KIND_MOBILE: 0,
        }

    # -- Construction --------------------------------------------------------

    def _count(self, kind: str) -> None:
        with self._counts_lock:
            self.construction_counts[kind] += 1

    def _build_web(self, kind: str, owner: str) -> WebSession:
        try:
            session = self._factory.create_web_session()
        except Exception as exc:
            logger.error("Failed to create browser for %s: %s", owner, exc)
            raise AcquisitionError(f"Failed to create browser for {owner}: {exc}") from exc
        self._count(kind)
        logger.info("Created browser session for %s", owner)
        return session

    # -- Web, per feature ----------------------------------------------------

    def acquire_for_feature(self, feature_uri: str) -> Any:
        """Return the page for *feature_uri*, creating its session on first use."""
        session = self._feature_sessions.get(feature_uri)
        if session is not None:
            return session.page

        with self._feature_lock:
            session = self._feature_sessions.get(feature_uri)
            if session is None:
                session = self._build_web(KIND_WEB_FEATURE, f"feature {feature_uri}")
                self._feature_sessions[feature_uri] = session
        return session.page

    def has_for_feature(self, feature_uri: str) -> bool:
        return feature_uri in self._feature_sessions

    def page_for_feature(self, feature_uri: str) -> Any | None:
        """Return the live page for *feature_uri* without creating one."""
        session = self._feature_sessions.get(feature_uri)
        return session.page if session is not None else None

    def release_for_feature(self, feature_uri: str) -> None:
        with self._feature_lock:
            session = self._feature_sessions.pop(feature_uri, None)
        if session is None:
            return
        close_web_session(session, f"feature {feature_uri}")

    def release_all_features(self) -> None:
        with self._feature_lock:
            sessions = list(self._feature_sessions.items())
            self._feature_sessions.clear()
        for feature_uri, session in sessions:
            close_web_session(session, f"feature {feature_uri}")
        if sessions:
            logger.info("Closed %d feature browser(s)", len(sessions))

    @property
    def feature_uris(self) -> list[str]:
        return list(self._feature_sessions)

    # -- Web, per thread -----------------------------------------------------

    def initialize(self) -> Any:
        """Create the calling thread's browser session if it has none; return its page."""
        key = threading.get_ident()
        session = self._thread_sessions.get(key)
        if session is not None:
            return session.page

        with self._thread_lock:
            session = self._thread_sessions.get(key)
            if session is None:
                session = self._build_web(KIND_WEB_THREAD, f"thread {key}")
                self._thread_sessions[key] = session
        return session.page

    def get_page(self) -> Any:
        """Return the calling thread's page, creating the session if needed."""
        return self.initialize()

    def thread_page(self) -> Any | None:
        """Return the calling thread's page without creating one."""
        session = self._thread_sessions.get(threading.get_ident())
        return session.page if session is not None else None

    def release_thread(self) -> None:
        key = threading.get_ident()
        with self._thread_lock:
            session = self._thread_sessions.pop(key, None)
        if session is None:
            return
        close_web_session(session, f"thread {key}")

    def release_all_threads(self) -> None:
        with self._thread_lock:
            sessions = list(self._thread_sessions.items())
            self._thread_sessions.clear()
        for key, session in sessions:
            close_web_session(session, f"thread {key}")

    # -- Mobile, per thread --------------------------------------------------

    def _mobile_platform(self) -> str:
        ctx = self._context_provider()
        requested = ctx.get("mobile_platform") or ctx.platform
        return MOBILE_IOS if str(requested).lower() == MOBILE_IOS else MOBILE_ANDROID

    def acquire_mobile(self) -> Any:
        """Return the calling thread's mobile driver, creating it on first use."""
        key = threading.get_ident()
        session = self._mobile_sessions.get(key)
        if session is not None:
            return session.driver

        with self._mobile_lock:
            session = self._mobile_sessions.get(key)
            if session is None:
                platform = self._mobile_platform()
                try:
                    session = self._factory.create_mobile_session(platform)
                except Exception as exc:
                    logger.error("Failed to create %s driver: %s", platform, exc)
                    raise AcquisitionError(f"Failed to create {platform} driver: {exc}") from exc
                self._mobile_sessions[key] = session
                self._count(KIND_MOBILE)
                logger.info("Created mobile driver for platform: %s and thread: %s", platform, key)
        return session.driver

    def has_mobile(self) -> bool:
        return threading.get_ident() in self._mobile_sessions

    def mobile_driver(self) -> Any | None:
        """Return the calling thread's driver without creating one."""
        session = self._mobile_sessions.get(threading.get_ident())
        return session.driver if session is not None else None

    def release_mobile(self) -> None:
        key = threading.get_ident()
        with self._mobile_lock:
            session = self._mobile_sessions.pop(key, None)
        if session is None:
            return
        close_mobile_session(session, f"thread {key}")

    def release_all_mobile(self) -> None:
        with self._mobile_lock:
            sessions = list(self._mobile_sessions.items())
            self._mobile_sessions.clear()
        for key, session in sessions:
            close_mobile_session(session, f"thread {key}")
