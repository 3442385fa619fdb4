"""CrossQA configuration registry.

A process-wide, read-mostly key/value store assembled from layered sources
(later layers override earlier ones):

1. ``<config_dir>/config.properties`` (or ``config.yaml``)
2. ``<config_dir>/<env>.properties`` (or ``<env>.yaml``), when ``env`` is set
3. ``CROSSQA_*`` environment variables
4. Explicit process properties (behave ``-D`` userdata, CLI ``-D`` options)

Missing files are a warning, not an error.
"""

from __future__ import annotations

import logging
import os
import re
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("crossqa.config")

DEFAULT_CONFIG_DIR = Path("config")
DEFAULT_BASENAME = "config"
ENV_PREFIX = "CROSSQA_"

_INT_RE = re.compile(r"^[+-]?\d+$")


class CrossQAConfigError(Exception):
    """Raised when configuration is invalid or a required key is missing."""

    pass


def parse_properties(text: str) -> dict[str, str]:
    """Parse a flat ``key=value`` (or ``key: value``) properties document."""
    result: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line[0] in "#!":
            continue
        # First separator wins, so values may contain '=' or ':' (URLs)
        positions = [p for p in (line.find("="), line.find(":")) if p > 0]
        if not positions:
            result[line] = ""
            continue
        sep = min(positions)
        result[line[:sep].strip()] = line[sep + 1:].strip()
    return result


def _to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten_yaml(data: Mapping[str, Any], prefix: str = "") -> dict[str, str]:
    """Flatten a YAML mapping into dotted string keys with string values."""
    flat: dict[str, str] = {}
    for key, value in data.items():
        full_key = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(flatten_yaml(value, prefix=f"{full_key}."))
        elif isinstance(value, list):
            flat[full_key] = ",".join(_to_str(v) for v in value)
        else:
            flat[full_key] = _to_str(value)
    return flat


def properties_from_environ(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Map ``CROSSQA_<KEY>`` environment variables to config keys.

    The remainder after the prefix is used verbatim, except that an
    all-uppercase remainder is lower-cased (``CROSSQA_ENV`` -> ``env``,
    ``CROSSQA_appiumUrl`` -> ``appiumUrl``).
    """
    environ = os.environ if environ is None else environ
    props: dict[str, str] = {}
    for name, value in environ.items():
        if not name.startswith(ENV_PREFIX) or len(name) == len(ENV_PREFIX):
            continue
        key = name[len(ENV_PREFIX):]
        if key.isupper():
            key = key.lower()
        props[key] = value
    return props


class ConfigRegistry:
    """Layered string key/value configuration with typed accessors."""

    def __init__(
        self,
        config_dir: Path | str = DEFAULT_CONFIG_DIR,
        properties: Mapping[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """
        Args:
            config_dir: Directory holding ``config.properties`` / ``<env>.properties``.
            properties: Process-supplied properties; override every file layer.
            environ: Environment to read ``CROSSQA_*`` variables from
                (defaults to ``os.environ``).
        """
        self._config_dir = Path(config_dir)
        self._values: dict[str, str] = {}
        self.sources: list[Path] = []

        process_props = properties_from_environ(environ)
        process_props.update({k: _to_str(v) for k, v in (properties or {}).items()})

        self._load_layer(DEFAULT_BASENAME)

        env = process_props.get("env", "").strip()
        if env:
            self._load_layer(env)

        self._values.update(process_props)
        self.env: str | None = env or None

    # -- Loading --------------------------------------------------------------

    def _load_layer(self, basename: str) -> None:
        """Load ``<basename>.properties`` or, failing that, ``<basename>.yaml``."""
        candidates = [
            self._config_dir / f"{basename}.properties",
            self._config_dir / f"{basename}.yaml",
            self._config_dir / f"{basename}.yml",
        ]
        for path in candidates:
            if path.is_file():
                self._load_file(path)
                return
        logger.warning("Properties file not found: %s", candidates[0])

    def _load_file(self, path: Path) -> None:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.error("Error loading properties from %s: %s", path, exc)
            return

        if path.suffix in (".yaml", ".yml"):
            try:
                data = yaml.safe_load(text) or {}
            except yaml.YAMLError as exc:
                logger.error("Invalid YAML in %s: %s", path, exc)
                return
            if not isinstance(data, Mapping):
                logger.error("Expected a mapping at the top of %s", path)
                return
            values = flatten_yaml(data)
        else:
            values = parse_properties(text)

        self._values.update(values)
        self.sources.append(path)
        logger.info("Loaded properties from: %s", path)

    # -- Accessors ------------------------------------------------------------

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the raw string value for *key*, or *default*."""
        return self._values.get(key, default)

    def require(self, key: str) -> str:
        """Return the value for *key* or raise :class:`CrossQAConfigError`."""
        value = self._values.get(key)
        if value is None or value == "":
            raise CrossQAConfigError(
                f"Missing required config key: {key}\n\n"
                f"To fix: add '{key}=...' to {self._config_dir / 'config.properties'} "
                f"or pass -D {key}=..."
            )
        return value

    def get_int(self, key: str, default: int) -> int:
        """Return *key* as a signed decimal integer, *default* when missing or invalid."""
        value = self._values.get(key)
        if value is None or value.strip() == "":
            return default
        if not _INT_RE.match(value.strip()):
            logger.warning("Invalid integer property: %s = %s", key, value)
            return default
        return int(value.strip())

    def get_bool(self, key: str, default: bool | None = None) -> bool:
        """Return *key* as a boolean.

        Only ``true``/``false`` (any case) are recognised. A missing key, or
        any other literal, yields *default* when one was given and ``False``
        otherwise.
        """
        value = self._values.get(key)
        fallback = bool(default) if default is not None else False
        if value is None:
            return fallback
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        return fallback

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def as_dict(self) -> dict[str, str]:
        """Return a snapshot copy of every resolved key."""
        return dict(self._values)


# ---------------------------------------------------------------------------
# Process-wide registry
# ---------------------------------------------------------------------------

_registry: ConfigRegistry | None = None
_registry_lock = threading.Lock()


def init_config(
    config_dir: Path | str = DEFAULT_CONFIG_DIR,
    properties: Mapping[str, Any] | None = None,
) -> ConfigRegistry:
    """Build the process-wide registry. Call once before worker threads start."""
    global _registry
    with _registry_lock:
        _registry = ConfigRegistry(config_dir=config_dir, properties=properties)
        return _registry


def get_config() -> ConfigRegistry:
    """Return the process-wide registry, building it from defaults on first use."""
    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = ConfigRegistry()
    return _registry


def reset_config() -> None:
    """Drop the process-wide registry (end of run, tests)."""
    global _registry
    with _registry_lock:
        _registry = None
