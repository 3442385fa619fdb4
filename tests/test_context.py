"""Unit tests for crossqa.context — per-thread ExecutionContext."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

from crossqa.context import ExecutionContext, clear_context, get_context
from crossqa.models import PLATFORM_MOBILE, PLATFORM_WEB


class TestExecutionContext:
    """Field accessors and reset semantics."""

    def test_defaults(self):
        ctx = ExecutionContext()
        assert ctx.platform == PLATFORM_WEB
        assert ctx.device_name is None
        assert ctx.scenario is None
        assert ctx.report_node is None
        assert ctx.attributes == {}

    def test_attributes_put_get_remove(self):
        ctx = ExecutionContext()
        ctx.put("isAppInstalled", False)
        assert ctx.get("isAppInstalled") is False
        assert ctx.get("missing", "fallback") == "fallback"
        ctx.remove("isAppInstalled")
        ctx.remove("isAppInstalled")
        assert ctx.get("isAppInstalled") is None

    def test_reset_clears_everything_and_is_idempotent(self):
        ctx = ExecutionContext()
        ctx.set_platform(PLATFORM_MOBILE)
        ctx.set_device("Pixel 8")
        ctx.set_scenario(object())
        ctx.set_report_node(object())
        ctx.put("k", "v")

        ctx.reset()
        ctx.reset()

        assert ctx.platform == PLATFORM_WEB
        assert ctx.device_name is None
        assert ctx.scenario is None
        assert ctx.report_node is None
        assert ctx.attributes == {}

    def test_owner_thread_is_creating_thread(self):
        assert ExecutionContext().owner_thread == threading.get_ident()


class TestThreadIsolation:
    """Each thread sees only its own context."""

    def test_same_thread_returns_same_instance(self):
        assert get_context() is get_context()

    def test_clear_context_creates_fresh_instance(self):
        first = get_context()
        first.put("k", 1)
        clear_context()
        assert get_context() is not first
        assert get_context().get("k") is None

    def test_threads_do_not_share_attributes(self):
        barrier = threading.Barrier(4)

        def work(i: int) -> tuple[int, str, int]:
            ctx = get_context()
            ctx.put("worker", i)
            ctx.set_device(f"device-{i}")
            barrier.wait()
            return ctx.get("worker"), ctx.device_name, ctx.owner_thread

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(work, range(4)))

        assert [r[0] for r in results] == [0, 1, 2, 3]
        assert [r[1] for r in results] == [f"device-{i}" for i in range(4)]
        assert len({r[2] for r in results}) == 4
        assert get_context().get("worker") is None
