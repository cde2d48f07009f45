"""Layered configuration resolution."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Mapping

from pydantic import ValidationError

from .exceptions import ConfigError
from .models import ElnPackConfig

ENV_PREFIX = "ELNPACK__"


def resolve_with_precedence(
    *,
    defaults: ElnPackConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> ElnPackConfig:
    """Merge configuration layers: defaults < file < environment < CLI.

    Args:
        defaults: Baseline configuration.
        file_overrides: Values read from the YAML config file.
        env_overrides: Values parsed from ``ELNPACK__`` environment variables.
        cli_overrides: Values passed explicitly on the command line. Keys may use
            dotted paths such as ``archive.body_format``.

    Returns:
        ElnPackConfig: The validated merged configuration.

    Raises:
        ConfigError: If a layer is malformed or the merged result fails validation.
    """
    merged = defaults.model_dump(mode="python")
    for layer_name, layer in (
        ("file", file_overrides),
        ("environment", env_overrides),
        ("cli", cli_overrides),
    ):
        if layer is None:
            continue
        merged = _deep_merge(merged, _expand_dotted(layer, layer_name=layer_name))

    try:
        return ElnPackConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def flatten_for_env(config: ElnPackConfig) -> dict[str, str]:
    """Render the config as ``ELNPACK__SECTION__KEY`` environment assignments."""
    flat: dict[str, str] = {}
    for section, values in config.model_dump(mode="python").items():
        for key, value in values.items():
            env_key = f"{ENV_PREFIX}{section.upper()}__{key.upper()}"
            flat[env_key] = "null" if value is None else str(value)
    return flat


def _expand_dotted(source: Mapping[str, Any], *, layer_name: str) -> dict[str, Any]:
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{layer_name.capitalize()} overrides must be a mapping.")

    expanded: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{layer_name.capitalize()} override keys must be strings.")
        *parents, leaf = key.split(".")
        node = expanded
        for segment in parents:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                raise ConfigError(
                    f"{layer_name.capitalize()} override for {key} conflicts with an existing value."
                )
            node = child
        if isinstance(value, MappingABC):
            nested = _expand_dotted(value, layer_name=layer_name)
            existing = node.get(leaf)
            node[leaf] = _deep_merge(existing, nested) if isinstance(existing, dict) else nested
        else:
            node[leaf] = value
    return expanded


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = ["ENV_PREFIX", "resolve_with_precedence", "flatten_for_env"]
