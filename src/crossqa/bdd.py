"""Behave hook bindings for CrossQA.

Use from ``features/environment.py``::

    from crossqa.bdd import (  # noqa: F401
        after_all, after_scenario, after_step,
        before_all, before_scenario, before_step,
    )

Process properties come from behave userdata (``behave -D env=staging``);
``configDir`` and ``reportsDir`` userdata keys relocate the config files and
artifacts.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from crossqa.config import DEFAULT_CONFIG_DIR, init_config, reset_config
from crossqa.engine.lifecycle import LifecycleOrchestrator
from crossqa.engine.protocols import SessionFactory

logger = logging.getLogger("crossqa.bdd")

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(threadName)s] %(name)s  %(message)s"


def _status_name(status: Any) -> str:
    """behave >= 1.2.6 uses a Status enum; older releases use plain strings."""
    return getattr(status, "name", None) or str(status or "untested")


class BehaveScenario:
    """Adapts a ``behave.model.Scenario`` to the ``ScenarioHandle`` protocol."""

    def __init__(self, scenario: Any) -> None:
        self._scenario = scenario

    @property
    def uri(self) -> str:
        filename = getattr(self._scenario, "filename", None)
        if not filename:
            feature = getattr(self._scenario, "feature", None)
            filename = getattr(feature, "filename", None) or ""
        return Path(filename).as_posix() if filename else ""

    @property
    def name(self) -> str:
        return self._scenario.name

    @property
    def tags(self) -> set[str]:
        tags = getattr(self._scenario, "effective_tags", None)
        if tags is None:
            tags = getattr(self._scenario, "tags", [])
        return {str(t) for t in tags}

    @property
    def status(self) -> str:
        return _status_name(getattr(self._scenario, "status", None))

    @property
    def is_failed(self) -> bool:
        return self.status in ("failed", "error")

    def __repr__(self) -> str:
        return f"BehaveScenario({self.uri!r}, {self.name!r})"


def step_text(step: Any) -> str:
    keyword = (getattr(step, "keyword", "") or "").strip()
    name = getattr(step, "name", "") or ""
    return f"{keyword} {name}".strip()


def get_orchestrator(context: Any) -> LifecycleOrchestrator:
    orchestrator = getattr(context, "crossqa", None)
    if orchestrator is None:
        raise RuntimeError(
            "CrossQA is not initialized. Import the hooks from crossqa.bdd "
            "in features/environment.py."
        )
    return orchestrator


# ---------------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------------

def before_all(context: Any, factory: SessionFactory | None = None) -> None:
    """Build config, session pool, report tree and orchestrator for the run."""
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

    userdata = dict(context.config.userdata)
    config_dir = userdata.get("configDir", DEFAULT_CONFIG_DIR)
    config = init_config(config_dir, properties=userdata)

    orchestrator = LifecycleOrchestrator.from_config(
        config, factory=factory, reports_dir=userdata.get("reportsDir")
    )
    orchestrator.before_all()
    context.crossqa = orchestrator
    logger.info("CrossQA initialized (env=%s)", config.env or "default")


def before_scenario(context: Any, scenario: Any) -> None:
    get_orchestrator(context).before_scenario(BehaveScenario(scenario))


def before_step(context: Any, step: Any) -> None:
    get_orchestrator(context).before_step(step_text(step))


def after_step(context: Any, step: Any) -> None:
    failed = _status_name(getattr(step, "status", None)) in ("failed", "error")
    error = getattr(step, "error_message", None) if failed else None
    if error:
        error = str(error).strip().splitlines()[-1]
    get_orchestrator(context).after_step(step_text(step), failed, error)


def after_scenario(context: Any, scenario: Any) -> None:
    get_orchestrator(context).after_scenario(BehaveScenario(scenario))


def after_all(context: Any) -> None:
    orchestrator = getattr(context, "crossqa", None)
    if orchestrator is None:
        return
    try:
        orchestrator.after_all()
    finally:
        reset_config()
