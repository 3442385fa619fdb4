"""CrossQA HTML Report — a tree-of-nodes sink rendered with Jinja2.

Mirrors the shape of an extent-style report: the report holds top-level
tests (features), each test holds child nodes (scenarios), and every node
carries a list of log entries (steps, assertions) with an optional
screenshot attachment.

Node creation and logging are serialized by a report-wide lock so worker
threads may write into different scenario nodes concurrently.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import logging
import os
import platform as _platform
import threading
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from crossqa.models import (
    REPORT_NAME,
    REPORT_TITLE,
    STATUS_FAIL,
    STATUS_INFO,
    STATUS_PASS,
    STATUS_SEVERITY,
    STATUS_SKIP,
)

logger = logging.getLogger("crossqa.engine.report_sink")

_TEMPLATES_DIR = Path(__file__).parent / "templates"
_TEMPLATE_NAME = "report.html.j2"


@dataclasses.dataclass
class LogEntry:
    """One line in a node's log."""

    status: str
    message: str
    attachment: str | None = None
    timestamp: str = dataclasses.field(
        default_factory=lambda: dt.datetime.now().strftime("%H:%M:%S")
    )


class ReportNode:
    """A feature or scenario node in the report tree."""

    def __init__(self, name: str, lock: threading.RLock, parent: ReportNode | None = None) -> None:
        self.name = name
        self.parent = parent
        self.children: list[ReportNode] = []
        self.logs: list[LogEntry] = []
        self.categories: list[str] = []
        self.started_at = dt.datetime.now()
        self._lock = lock

    # -- Tree ----------------------------------------------------------------

    def create_node(self, name: str) -> ReportNode:
        with self._lock:
            child = ReportNode(name, self._lock, parent=self)
            self.children.append(child)
            return child

    def assign_category(self, *tags: str) -> ReportNode:
        with self._lock:
            for tag in tags:
                if tag and tag not in self.categories:
                    self.categories.append(tag)
        return self

    @property
    def depth(self) -> int:
        return 1 if self.parent is None else self.parent.depth + 1

    # -- Logging -------------------------------------------------------------

    def log(self, status: str, message: str, attachment: str | None = None) -> ReportNode:
        if status not in STATUS_SEVERITY:
            raise ValueError(f"Unknown report status: {status}")
        with self._lock:
            self.logs.append(LogEntry(status=status, message=message, attachment=attachment))
        return self

    def info(self, message: str) -> ReportNode:
        return self.log(STATUS_INFO, message)

    def mark_pass(self, message: str) -> ReportNode:
        return self.log(STATUS_PASS, message)

    def mark_fail(self, reason: str, attachment: str | None = None) -> ReportNode:
        return self.log(STATUS_FAIL, reason, attachment)

    def mark_skip(self, reason: str) -> ReportNode:
        return self.log(STATUS_SKIP, reason)

    @property
    def status(self) -> str:
        """Worst status among own logs and children; ``pass`` when nothing worse was logged."""
        with self._lock:
            statuses = [entry.status for entry in self.logs]
            statuses.extend(child.status for child in self.children)
        worst = max(statuses, key=STATUS_SEVERITY.__getitem__, default=STATUS_PASS)
        return STATUS_PASS if worst == STATUS_INFO else worst

    def __repr__(self) -> str:
        return f"ReportNode({self.name!r}, children={len(self.children)}, logs={len(self.logs)})"


class HtmlReport:
    """Root of the report tree; renders to one or more HTML files on flush."""

    def __init__(self, title: str = REPORT_TITLE, report_name: str = REPORT_NAME) -> None:
        self.title = title
        self.report_name = report_name
        self.tests: list[ReportNode] = []
        self.system_info: dict[str, str] = {"Operating System": _platform.platform()}
        self._targets: list[Path] = []
        self._lock = threading.RLock()
        self._started_at = dt.datetime.now()
        self._env = Environment(
            loader=FileSystemLoader(str(_TEMPLATES_DIR)),
            autoescape=select_autoescape(["html", "j2"]),
        )

    def attach_reporter(self, path: Path | str) -> None:
        """Register an output file. Parent directories are created on flush."""
        with self._lock:
            self._targets.append(Path(path))

    @property
    def targets(self) -> list[Path]:
        return list(self._targets)

    def set_system_info(self, key: str, value: Any) -> None:
        with self._lock:
            self.system_info[key] = str(value)

    def create_test(self, name: str) -> ReportNode:
        with self._lock:
            node = ReportNode(name, self._lock)
            self.tests.append(node)
            return node

    # -- Rendering -----------------------------------------------------------

    def _summary(self) -> dict[str, int]:
        counts = {STATUS_PASS: 0, STATUS_FAIL: 0, STATUS_SKIP: 0}
        for test in self.tests:
            for scenario in test.children:
                counts[scenario.status] = counts.get(scenario.status, 0) + 1
        counts["total"] = sum(counts.values())
        return counts

    def render(self, target: Path) -> str:
        """Render the report as HTML; attachment links are made relative to *target*."""
        base_dir = target.parent.resolve()

        def relative(path: str | None) -> str | None:
            if not path:
                return None
            try:
                return os.path.relpath(Path(path).resolve(), base_dir)
            except ValueError:
                return str(path)

        template = self._env.get_template(_TEMPLATE_NAME)
        with self._lock:
            return template.render(
                title=self.title,
                report_name=self.report_name,
                started_at=self._started_at.strftime("%Y-%m-%d %H:%M:%S"),
                finished_at=dt.datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
                system_info=dict(self.system_info),
                tests=list(self.tests),
                summary=self._summary(),
                relative=relative,
            )

    def flush(self) -> list[Path]:
        """Write the report to every attached file. Returns the files written."""
        written: list[Path] = []
        for target in self.targets:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(self.render(target), encoding="utf-8")
            written.append(target)
            logger.info("Report written: %s", target)
        return written
