"""CrossQA engine — driver lifecycle and test-context core.

- SessionPool: feature- and thread-scoped Playwright/Appium sessions
- PlaywrightAppiumFactory: builds sessions from configuration
- HtmlReport / ReportTreeBuilder: feature -> scenario -> step report tree
- AssertionFacade: assertions that log to the report and screenshot on failure
- LifecycleOrchestrator: binds BDD runner events to all of the above
"""

from crossqa.engine.assertions import AssertionFacade, Outcome, VerificationError
from crossqa.engine.factory import PlaywrightAppiumFactory
from crossqa.engine.lifecycle import LifecycleOrchestrator
from crossqa.engine.protocols import (
    MobileSession,
    ScenarioHandle,
    SessionFactory,
    SimpleScenario,
    WebSession,
)
from crossqa.engine.report_sink import HtmlReport, LogEntry, ReportNode
from crossqa.engine.report_tree import ReportTreeBuilder, format_feature_name
from crossqa.engine.session_pool import AcquisitionError, SessionPool

__all__ = [
    "AcquisitionError",
    "AssertionFacade",
    "HtmlReport",
    "LifecycleOrchestrator",
    "LogEntry",
    "MobileSession",
    "Outcome",
    "PlaywrightAppiumFactory",
    "ReportNode",
    "ReportTreeBuilder",
    "ScenarioHandle",
    "SessionFactory",
    "SessionPool",
    "SimpleScenario",
    "VerificationError",
    "WebSession",
    "format_feature_name",
]
