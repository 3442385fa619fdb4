"""Per-thread execution context.

Each worker thread owns one :class:`ExecutionContext` holding the platform,
device, current scenario, current report node and scratch attributes of the
scenario it is running. Nothing is shared between threads.
"""

from __future__ import annotations

import threading
from typing import Any

from crossqa.models import PLATFORM_WEB

_local = threading.local()


class ExecutionContext:
    """Bag of metadata for the scenario running on the owning thread."""

    def __init__(self) -> None:
        self._owner = threading.get_ident()
        self.platform: str = PLATFORM_WEB
        self.device_name: str | None = None
        self.scenario: Any = None
        self.report_node: Any = None
        self.attributes: dict[str, Any] = {}

    @property
    def owner_thread(self) -> int:
        return self._owner

    def set_platform(self, platform: str) -> None:
        self.platform = platform

    def set_device(self, device_name: str | None) -> None:
        self.device_name = device_name

    def set_scenario(self, scenario: Any) -> None:
        self.scenario = scenario

    def set_report_node(self, node: Any) -> None:
        self.report_node = node

    def put(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)

    def remove(self, key: str) -> None:
        self.attributes.pop(key, None)

    def reset(self) -> None:
        """Clear every field back to its default. Safe to call repeatedly."""
        self.platform = PLATFORM_WEB
        self.device_name = None
        self.scenario = None
        self.report_node = None
        self.attributes = {}

    def __repr__(self) -> str:
        return (
            f"ExecutionContext(platform={self.platform!r}, device={self.device_name!r}, "
            f"scenario={getattr(self.scenario, 'name', None)!r}, attributes={sorted(self.attributes)})"
        )


def get_context() -> ExecutionContext:
    """Return the calling thread's context, creating it on first access."""
    ctx = getattr(_local, "context", None)
    if ctx is None:
        ctx = ExecutionContext()
        _local.context = ctx
    return ctx


def clear_context() -> None:
    """Discard the calling thread's context entirely."""
    if hasattr(_local, "context"):
        del _local.context
