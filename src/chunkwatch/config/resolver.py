"""Configuration resolution helpers."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import ChunkwatchConfig

ENV_PREFIX = "CHUNKWATCH__"


def resolve_with_precedence(
    *,
    defaults: ChunkwatchConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> ChunkwatchConfig:
    """Layer file, environment, and CLI overrides on top of ``defaults``.

    Later sources win. Keys may be nested mappings or dotted paths such as
    ``watch.poll_interval_seconds``.

    Raises:
        ConfigError: If an override is malformed or the merged result fails validation.
    """
    merged = defaults.model_dump(mode="python")
    layers = (("file", file_overrides), ("environment", env_overrides), ("cli", cli_overrides))
    for label, layer in layers:
        if layer is None:
            continue
        merged = _deep_merge(merged, _expand_dotted(layer, label=label))

    try:
        return ChunkwatchConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def flatten_for_env(config: ChunkwatchConfig) -> Dict[str, str]:
    """Render ``config`` as ``CHUNKWATCH__SECTION__KEY`` environment variables."""
    flat: Dict[str, str] = {}

    def _walk(path: list[str], value: Any) -> None:
        if isinstance(value, dict):
            for key, child in value.items():
                _walk([*path, str(key)], child)
            return
        name = ENV_PREFIX + "__".join(segment.upper() for segment in path)
        if isinstance(value, list):
            flat[name] = yaml.safe_dump(value, default_flow_style=True).strip()
        elif value is None:
            flat[name] = "null"
        else:
            flat[name] = str(value)

    for section, payload in config.model_dump(mode="python").items():
        _walk([section], payload)
    return flat


def _expand_dotted(source: Mapping[str, Any], *, label: str) -> dict[str, Any]:
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{label.capitalize()} overrides must be a mapping.")

    expanded: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{label.capitalize()} override keys must be strings.")
        _set_path(expanded, key.split("."), value, label=label)
    return expanded


def _set_path(target: dict[str, Any], path: list[str], value: Any, *, label: str) -> None:
    node = target
    for segment in path[:-1]:
        child = node.setdefault(segment, {})
        if not isinstance(child, dict):
            raise ConfigError(
                f"{label.capitalize()} override for {'.'.join(path)} conflicts with existing value."
            )
        node = child

    leaf = path[-1]
    if isinstance(value, MappingABC):
        current = node.get(leaf)
        base = current if isinstance(current, dict) else {}
        node[leaf] = _deep_merge(base, _expand_dotted(value, label=label))
    else:
        node[leaf] = value


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        existing = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(existing, MappingABC):
            merged[key] = _deep_merge(existing, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = ["ENV_PREFIX", "resolve_with_precedence", "flatten_for_env"]
