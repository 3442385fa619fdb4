"""Mobile step definitions (Appium)."""

from __future__ import annotations

import logging

from behave import given, step, then, when

from crossqa.bdd import get_orchestrator
from crossqa.pages.mobile_app import MobileApp

logger = logging.getLogger("crossqa.steps.mobile")

# Appium app states that count as "closed"
_CLOSED_STATES = (0, 1)


def _app(context, app_id: str | None = None) -> MobileApp:
    orchestrator = get_orchestrator(context)
    ctx = orchestrator.context
    if app_id is None:
        app_id = ctx.get("currentAppId")
    if not app_id:
        raise RuntimeError("No application selected; use a step that names the app first")
    return MobileApp(orchestrator.mobile_driver(), app_id, context=ctx)


@given('I check if "{app_id}" is installed')
def step_check_installed(context, app_id):
    installed = _app(context, app_id).is_installed()
    ctx = get_orchestrator(context).context
    ctx.put("currentAppId", app_id)
    ctx.put("isAppInstalled", installed)
    logger.info("App %s is installed: %s", app_id, installed)


@when("Not installed, install from Google Play")
def step_install_if_missing(context):
    orchestrator = get_orchestrator(context)
    if orchestrator.context.get("isAppInstalled") is False:
        installed = _app(context).install_from_store()
        orchestrator.assertions.assert_true(
            installed,
            "App installed successfully from Google Play",
            "Failed to install app from Google Play",
        )
    else:
        logger.info("App already installed, skipping installation")


@then('Assert app is installed on "{device}"')
def step_assert_installed(context, device):
    installed = _app(context).is_installed()
    get_orchestrator(context).assertions.assert_true(
        installed,
        f"App is installed on device: {device}",
        f"App is not installed on device: {device}",
    )


@given('I open the "{app_id}" app')
def step_open_app(context, app_id):
    launched = _app(context, app_id).launch()
    get_orchestrator(context).assertions.assert_true(
        launched,
        f"Launched app: {app_id}",
        f"Failed to launch app: {app_id}",
    )


@then("The app should be fully loaded")
def step_app_loaded(context):
    app = _app(context)
    loaded = app.is_fully_loaded()
    get_orchestrator(context).assertions.assert_true(
        loaded,
        f"App is fully loaded ({app.last_load_time_ms} ms)",
        "App failed to load completely",
    )


@step("I close the app")
def step_close_app(context):
    _app(context).close()


@then("Assert app is closed")
def step_app_closed(context):
    app = _app(context)
    state = app.app_state(app.app_id)
    get_orchestrator(context).assertions.assert_true(
        state in _CLOSED_STATES,
        "App successfully closed",
        f"App is still running (state {state})",
    )
