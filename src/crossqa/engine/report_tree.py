"""CrossQA Report Tree Builder — feature and scenario nodes over the HTML sink.

The tree has exactly three levels: the report root, one node per feature
file, one node per scenario. Steps are log entries on the scenario node.

Feature nodes are created with an optimistic read followed by a locked
double-check, so concurrent scenarios of the same feature share one node.
Scenario nodes are keyed by ``ScenarioKey`` so a retried scenario reuses
the node opened by its first attempt.
"""

from __future__ import annotations

import logging
import re
import threading
from pathlib import Path

from crossqa.engine.report_sink import HtmlReport, ReportNode
from crossqa.models import STATUS_SEVERITY, ScenarioKey

logger = logging.getLogger("crossqa.engine.report_tree")

_FEATURE_SUFFIX = ".feature"


def format_feature_name(feature_uri: str) -> str:
    """Turn ``features/web/my_test_feature.feature`` into ``My Test Feature``.

    Underscores become spaces one-for-one (``a__b`` -> ``A  B``). Each word
    starts upper-case and continues lower-case.
    """
    name = re.split(r"[/\\]", feature_uri)[-1]
    if name.endswith(_FEATURE_SUFFIX):
        name = name[: -len(_FEATURE_SUFFIX)]
    name = name.replace("_", " ")

    chars: list[str] = []
    capitalize_next = True
    for ch in name:
        if ch.isspace():
            capitalize_next = True
            chars.append(ch)
        elif capitalize_next:
            chars.append(ch.upper())
            capitalize_next = False
        else:
            chars.append(ch.lower())
    return "".join(chars)


class ReportTreeBuilder:
    """Thread-safe builder of the feature -> scenario report tree."""

    def __init__(self, sink: HtmlReport) -> None:
        self._sink = sink
        self._features: dict[str, ReportNode] = {}
        self._feature_lock = threading.Lock()
        self._opened: dict[ScenarioKey, ReportNode] = {}
        self._opened_lock = threading.Lock()
        self._flush_lock = threading.Lock()
        self._flushed = False

    @property
    def sink(self) -> HtmlReport:
        return self._sink

    # -- Features ------------------------------------------------------------

    def get_or_create_feature(self, feature_uri: str, human_name: str | None = None) -> ReportNode:
        node = self._features.get(feature_uri)
        if node is not None:
            return node

        with self._feature_lock:
            node = self._features.get(feature_uri)
            if node is not None:
                return node
            name = human_name or format_feature_name(feature_uri)
            node = self._sink.create_test(name)
            self._features[feature_uri] = node
            logger.info("Created feature node '%s' for %s", name, feature_uri)
            return node

    def feature_node(self, feature_uri: str) -> ReportNode | None:
        return self._features.get(feature_uri)

    @property
    def feature_count(self) -> int:
        return len(self._features)

    # -- Scenarios -----------------------------------------------------------

    def create_scenario(self, feature_node: ReportNode, scenario_name: str) -> ReportNode:
        return feature_node.create_node(scenario_name)

    def open_scenario(
        self,
        key: ScenarioKey,
        feature_node: ReportNode,
        display_name: str | None = None,
    ) -> tuple[ReportNode, bool]:
        """Return the scenario node for *key*, creating it only on first sight.

        Returns ``(node, created)``; ``created`` is False for a retry.
        """
        with self._opened_lock:
            node = self._opened.get(key)
            if node is not None:
                logger.info("Scenario already processed: %s", key)
                return node, False
            node = self.create_scenario(feature_node, display_name or key.scenario_name)
            self._opened[key] = node
            return node, True

    def is_opened(self, key: ScenarioKey) -> bool:
        return key in self._opened

    def scenario_count(self, feature_uri: str) -> int:
        node = self._features.get(feature_uri)
        return len(node.children) if node is not None else 0

    @property
    def opened_count(self) -> int:
        return len(self._opened)

    # -- Steps ---------------------------------------------------------------

    def log_step(
        self,
        scenario_node: ReportNode | None,
        status: str,
        text: str,
        attachment: str | None = None,
    ) -> None:
        """Append a step entry. Sink errors are logged, never raised."""
        if scenario_node is None:
            return
        if status not in STATUS_SEVERITY:
            logger.warning("Ignoring step entry with unknown status %r: %s", status, text)
            return
        try:
            scenario_node.log(status, text, attachment)
        except Exception as exc:
            logger.error("Failed to write report entry '%s': %s", text, exc)

    # -- Output --------------------------------------------------------------

    def flush(self) -> list[Path]:
        """Write the tree to the sink's files once; later calls do nothing."""
        with self._flush_lock:
            if self._flushed:
                return []
            self._flushed = True
        try:
            written = self._sink.flush()
        except Exception as exc:
            logger.error("Failed to flush report: %s", exc)
            return []
        logger.info(
            "Report flushed: %d feature node(s), %d scenario(s)",
            self.feature_count, self.opened_count,
        )
        return written
