"""YAML configuration loader.

An optional YAML file overrides the environment-derived ``HostConfig``.
Only the ``host`` section is read; unknown keys are logged and ignored.

Example YAML:
    host:
      claude_cli: /usr/local/bin/claude
      model: sonnet
      tool_clear_delay: 1.5
      event_log_size: 200
      log_level: DEBUG
"""
from __future__ import annotations

import logging
from dataclasses import fields, replace
from pathlib import Path

import yaml

from .config import HostConfig

logger = logging.getLogger(__name__)

_NUMERIC_FIELDS: dict[str, type] = {
    "tool_clear_delay": float,
    "event_log_size": int,
    "event_queue_size": int,
    "stderr_limit": int,
    "tool_result_preview_chars": int,
}


def load_yaml_config(
    path: str | Path,
    base: HostConfig | None = None,
) -> HostConfig:
    """Load *path* and apply its ``host`` section on top of *base*.

    Raises FileNotFoundError when *path* does not exist and
    ``yaml.YAMLError`` when it is not valid YAML.
    """
    path = Path(path)
    base = base or HostConfig.from_env()
    logger.info("load_yaml_config: loading %s", path)
    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.error("load_yaml_config: config file not found at %s", path.absolute())
        raise
    except yaml.YAMLError as exc:
        logger.error("load_yaml_config: YAML parse error in %s: %s", path, exc)
        raise

    if not isinstance(raw, dict):
        logger.warning("load_yaml_config: %s is not a mapping, ignoring", path)
        return base

    host_raw = raw.get("host") or {}
    if not isinstance(host_raw, dict):
        logger.warning("load_yaml_config: 'host' section in %s is not a mapping", path)
        return base

    known = {f.name for f in fields(HostConfig)}
    overrides: dict[str, object] = {}
    for key, value in host_raw.items():
        if key not in known:
            logger.warning("load_yaml_config: unknown host key %r in %s", key, path)
            continue
        caster = _NUMERIC_FIELDS.get(key)
        if caster is not None:
            try:
                value = caster(value)
            except (TypeError, ValueError):
                logger.warning(
                    "load_yaml_config: invalid value for %s: %r", key, value,
                )
                continue
        elif value is not None:
            value = str(value)
        overrides[key] = value

    if overrides:
        logger.info(
            "load_yaml_config: host overrides from %s: %s",
            path.name, ", ".join(sorted(overrides)),
        )
    return replace(base, **overrides)


def resolve_config(
    explicit_path: str | Path | None,
    default_path: Path,
) -> HostConfig:
    """Env config, overridden by *explicit_path* or an existing *default_path*."""
    config = HostConfig.from_env()
    if explicit_path:
        return load_yaml_config(explicit_path, config)
    if default_path.is_file():
        return load_yaml_config(default_path, config)
    logger.debug("resolve_config: no YAML config at %s", default_path)
    return config
