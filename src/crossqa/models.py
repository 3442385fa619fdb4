"""Centralized constants and small value types shared across CrossQA."""

from __future__ import annotations

import dataclasses
import datetime as dt

# Platforms
PLATFORM_WEB = "web"
PLATFORM_MOBILE = "mobile"
PLATFORMS = (PLATFORM_WEB, PLATFORM_MOBILE)

MOBILE_ANDROID = "android"
MOBILE_IOS = "ios"

# Report entry statuses, ordered by severity (lowest first)
STATUS_INFO = "info"
STATUS_PASS = "pass"
STATUS_SKIP = "skip"
STATUS_FAIL = "fail"
STATUS_SEVERITY = {
    STATUS_INFO: 0,
    STATUS_PASS: 1,
    STATUS_SKIP: 2,
    STATUS_FAIL: 3,
}

# Browser engines accepted by the `browser` config key
BROWSER_ENGINES = {
    "chrome": "chromium",
    "chromium": "chromium",
    "firefox": "firefox",
    "webkit": "webkit",
}

# Defaults
DEFAULT_BROWSER = "chrome"
DEFAULT_TIMEOUT_SECONDS = 30
DEFAULT_APPIUM_URL = "http://localhost:4723"
DEFAULT_ANDROID_DEVICE = "Galaxy S24 Emulator"
DEFAULT_IOS_DEVICE = "iPhone 14"
MOBILE_NEW_COMMAND_TIMEOUT = 60  # seconds
MOBILE_WAIT_SECONDS = 30

# Artifact layout (relative to the reports directory, `target` by default)
DEFAULT_REPORTS_DIR = "target"
EXTENT_REPORTS_SUBDIR = "extent-reports"
SCREENSHOTS_SUBDIR = "screenshots"
RERUN_FILE = "failed_scenarios.txt"
JUNIT_SUBDIR = "junit-reports"
JSON_REPORT = "cucumber-report.json"
REPORT_PREFIX = "cucumber_report_"
SCREENSHOT_PREFIX = "screenshot_"

REPORT_TITLE = "CrossQA Automation Test Report"
REPORT_NAME = "BDD Tests"

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def timestamp(now: dt.datetime | None = None) -> str:
    """Return a ``YYYYMMDD_HHMMSS`` stamp for artifact file names."""
    return (now or dt.datetime.now()).strftime(TIMESTAMP_FORMAT)


@dataclasses.dataclass(frozen=True)
class ScenarioKey:
    """Identifies a scenario across retries."""

    feature_uri: str
    scenario_name: str

    def __str__(self) -> str:
        return f"{self.feature_uri}:{self.scenario_name}"
