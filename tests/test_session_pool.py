"""Unit tests for crossqa.engine.session_pool — SessionPool caches."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from crossqa.context import get_context
from crossqa.engine.protocols import SessionFactory
from crossqa.engine.session_pool import (
    KIND_MOBILE,
    KIND_WEB_FEATURE,
    KIND_WEB_THREAD,
    AcquisitionError,
    SessionPool,
)

HOME = "features/web/home_page.feature"
LOGIN = "features/web/login.feature"


# ---------------------------------------------------------------------------
# 1. Feature-scoped browsers
# ---------------------------------------------------------------------------

class TestFeatureScope:
    """One browser per feature URI, reused until released."""

    def test_fake_factory_satisfies_protocol(self, fake_factory):
        assert isinstance(fake_factory, SessionFactory)

    def test_acquire_creates_once_and_reuses(self, pool, fake_factory):
        first = pool.acquire_for_feature(HOME)
        second = pool.acquire_for_feature(HOME)
        assert first is second
        assert pool.construction_counts[KIND_WEB_FEATURE] == 1
        assert len(fake_factory.web_sessions) == 1

    def test_distinct_features_get_distinct_pages(self, pool):
        assert pool.acquire_for_feature(HOME) is not pool.acquire_for_feature(LOGIN)
        assert sorted(pool.feature_uris) == [HOME, LOGIN]

    def test_has_and_peek_do_not_create(self, pool):
        assert pool.has_for_feature(HOME) is False
        assert pool.page_for_feature(HOME) is None
        assert pool.construction_counts[KIND_WEB_FEATURE] == 0

    def test_release_closes_page_browser_runtime(self, pool, fake_factory):
        pool.acquire_for_feature(HOME)
        session = fake_factory.web_sessions[0]

        pool.release_for_feature(HOME)

        session.page.close.assert_called_once()
        session.browser.close.assert_called_once()
        session.runtime.stop.assert_called_once()
        assert pool.has_for_feature(HOME) is False

    def test_release_unknown_is_noop(self, pool):
        pool.release_for_feature("features/never.feature")

    def test_release_continues_after_close_failure(self, pool, fake_factory):
        pool.acquire_for_feature(HOME)
        session = fake_factory.web_sessions[0]
        session.page.close.side_effect = RuntimeError("target closed")

        pool.release_for_feature(HOME)

        session.browser.close.assert_called_once()
        session.runtime.stop.assert_called_once()

    def test_reacquire_after_release_builds_new_session(self, pool):
        first = pool.acquire_for_feature(HOME)
        pool.release_for_feature(HOME)
        second = pool.acquire_for_feature(HOME)
        assert first is not second
        assert pool.construction_counts[KIND_WEB_FEATURE] == 2

    def test_release_all_features(self, pool, fake_factory):
        pool.acquire_for_feature(HOME)
        pool.acquire_for_feature(LOGIN)
        pool.release_all_features()
        assert pool.feature_uris == []
        for session in fake_factory.web_sessions:
            session.browser.close.assert_called_once()

    def test_construction_failure_raises_acquisition_error(self, pool, fake_factory):
        fake_factory.fail_web = True
        with pytest.raises(AcquisitionError, match="browser binary not found"):
            pool.acquire_for_feature(HOME)
        assert pool.has_for_feature(HOME) is False
        assert pool.construction_counts[KIND_WEB_FEATURE] == 0


# ---------------------------------------------------------------------------
# 2. Thread-scoped browsers
# ---------------------------------------------------------------------------

class TestThreadScope:
    """Fallback browser keyed by the calling thread."""

    def test_get_page_initializes_once(self, pool):
        assert pool.thread_page() is None
        page = pool.get_page()
        assert pool.get_page() is page
        assert pool.thread_page() is page
        assert pool.construction_counts[KIND_WEB_THREAD] == 1

    def test_threads_get_their_own_page(self, pool):
        main_page = pool.get_page()
        with ThreadPoolExecutor(max_workers=1) as executor:
            other_page = executor.submit(pool.get_page).result()
        assert other_page is not main_page
        assert pool.construction_counts[KIND_WEB_THREAD] == 2

    def test_release_thread_only_closes_own_session(self, pool, fake_factory):
        pool.get_page()
        with ThreadPoolExecutor(max_workers=1) as executor:
            executor.submit(pool.get_page).result()

        pool.release_thread()

        main_session, other_session = fake_factory.web_sessions
        main_session.browser.close.assert_called_once()
        other_session.browser.close.assert_not_called()
        assert pool.thread_page() is None

        pool.release_all_threads()
        other_session.browser.close.assert_called_once()

    def test_feature_and_thread_caches_are_independent(self, pool):
        feature_page = pool.acquire_for_feature(HOME)
        thread_page = pool.get_page()
        assert feature_page is not thread_page
        pool.release_thread()
        assert pool.page_for_feature(HOME) is feature_page


# ---------------------------------------------------------------------------
# 3. Mobile drivers
# ---------------------------------------------------------------------------

class TestMobileScope:
    """One Appium driver per thread; platform taken from the context."""

    def test_acquire_defaults_to_android(self, pool, fake_factory):
        driver = pool.acquire_mobile()
        assert pool.acquire_mobile() is driver
        assert pool.mobile_driver() is driver
        assert fake_factory.mobile_platforms == ["android"]
        assert pool.construction_counts[KIND_MOBILE] == 1

    def test_context_selects_ios(self, pool, fake_factory):
        get_context().put("mobile_platform", "iOS")
        pool.acquire_mobile()
        assert fake_factory.mobile_platforms == ["ios"]

    def test_release_quits_driver(self, pool, fake_factory):
        driver = pool.acquire_mobile()
        pool.release_mobile()
        driver.quit.assert_called_once()
        assert pool.has_mobile() is False
        pool.release_mobile()
        driver.quit.assert_called_once()

    def test_quit_failure_is_swallowed(self, pool):
        driver = pool.acquire_mobile()
        driver.quit.side_effect = RuntimeError("session gone")
        pool.release_mobile()
        assert pool.mobile_driver() is None

    def test_construction_failure_raises_acquisition_error(self, pool, fake_factory):
        fake_factory.fail_mobile = True
        with pytest.raises(AcquisitionError, match="android"):
            pool.acquire_mobile()
        assert pool.has_mobile() is False


# ---------------------------------------------------------------------------
# 4. Concurrency
# ---------------------------------------------------------------------------

class TestConcurrency:
    """Concurrent first access constructs exactly one session per key."""

    def test_concurrent_acquire_same_feature_builds_once(self, slow_factory):
        pool = SessionPool(slow_factory)
        barrier = threading.Barrier(8)

        def work(_):
            barrier.wait()
            return pool.acquire_for_feature(HOME)

        with ThreadPoolExecutor(max_workers=8) as executor:
            pages = list(executor.map(work, range(8)))

        assert len({id(p) for p in pages}) == 1
        assert pool.construction_counts[KIND_WEB_FEATURE] == 1

    def test_concurrent_acquire_distinct_features(self, slow_factory):
        pool = SessionPool(slow_factory)
        uris = [f"features/web/f{i}.feature" for i in range(4)]
        barrier = threading.Barrier(8)

        def work(i):
            barrier.wait()
            return uris[i % 4], pool.acquire_for_feature(uris[i % 4])

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(work, range(8)))

        assert pool.construction_counts[KIND_WEB_FEATURE] == 4
        by_uri: dict[str, set[int]] = {}
        for uri, page in results:
            by_uri.setdefault(uri, set()).add(id(page))
        assert all(len(ids) == 1 for ids in by_uri.values())

    def test_concurrent_mobile_one_driver_per_thread(self, slow_factory):
        pool = SessionPool(slow_factory)

        def work(_):
            first = pool.acquire_mobile()
            second = pool.acquire_mobile()
            return first is second

        with ThreadPoolExecutor(max_workers=4) as executor:
            same = list(executor.map(work, range(4)))

        assert all(same)
        assert pool.construction_counts[KIND_MOBILE] == len(slow_factory.mobile_sessions)
        pool.release_all_mobile()
        for session in slow_factory.mobile_sessions:
            session.driver.quit.assert_called_once()
