"""Web step definitions (Playwright)."""

from __future__ import annotations

import logging

from behave import given, step, then

from crossqa.bdd import get_orchestrator
from crossqa.pages.home_page import HomePage

logger = logging.getLogger("crossqa.steps.web")


def _home_page(context) -> HomePage:
    orchestrator = get_orchestrator(context)
    return HomePage(orchestrator.page_for(), context=orchestrator.context)


@given('I open the URL "{url}"')
def step_open_url(context, url):
    logger.info("Opening URL: %s", url)
    opened = _home_page(context).open(url)
    get_orchestrator(context).assertions.assert_true(
        opened,
        f"Opened URL: {url}",
        f"Failed to open URL: {url}",
    )


@then('The page title should contain "{expected}"')
def step_title_contains(context, expected):
    title = _home_page(context).get_title()
    logger.info("Actual page title: %s", title)
    get_orchestrator(context).assertions.assert_contains(
        title,
        expected,
        f"Page title contains expected text: {expected}",
        f"Page title does not contain expected text: {expected}",
    )


@then('The page should load in less than "{limit_ms}" milliseconds')
def step_load_time(context, limit_ms):
    limit = int(limit_ms)
    load_time = _home_page(context).page_load_time()
    get_orchestrator(context).assertions.assert_less_than(
        load_time,
        limit,
        f"Page loaded in {load_time} ms (limit: {limit} ms)",
        "Page load time exceeded limit",
    )


@then('The logo at "{selector}" should be visible')
def step_logo_visible(context, selector):
    visible = _home_page(context).is_logo_visible(selector)
    get_orchestrator(context).assertions.assert_true(
        visible,
        f"Logo is visible at selector: '{selector}'",
        f"Logo is not visible at selector: '{selector}'",
    )


@then('The identification field "{selector}" should be visible')
def step_identification_visible(context, selector):
    logger.info("Checking identification field: %s", selector)
    visible = _home_page(context).is_identification_field_visible(selector)
    get_orchestrator(context).assertions.assert_true(
        visible,
        f"Identification field is visible at selector: '{selector}'",
        f"Identification field is not visible at selector: '{selector}'",
    )


@then('The password field "{selector}" should be visible')
def step_password_visible(context, selector):
    logger.info("Checking password field: %s", selector)
    visible = _home_page(context).is_password_field_visible(selector)
    get_orchestrator(context).assertions.assert_true(
        visible,
        f"Password field is visible at selector: '{selector}'",
        f"Password field is not visible at selector: '{selector}'",
    )


@step("I close the browser")
def step_close_browser(context):
    logger.info("Closing the browser")
    get_orchestrator(context).close_browser()


@then("Assert browser is closed")
def step_browser_closed(context):
    orchestrator = get_orchestrator(context)
    orchestrator.assertions.assert_true(
        not orchestrator.browser_open(),
        "Browser is confirmed to be closed",
        "Browser is still open when it should be closed",
    )
