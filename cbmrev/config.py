"""
Settings: sniff weights and trace budgets, optionally read from a JSON file.

A settings file is a JSON object; every key is optional:

    {
      "trace_steps": 20000,
      "stub_trace_steps": 100,
      "weights": {"basic_load_match": 2.0}
    }
"""

from __future__ import annotations

import dataclasses
import json
from typing import Any, Dict, Optional

from .errors import ConfigError
from .sniffers import DEFAULT_STUB_TRACE_STEPS, DEFAULT_WEIGHTS, SniffWeights
from .tracer import DEFAULT_TRACE_STEPS


@dataclasses.dataclass(frozen=True)
class Settings:
    weights: SniffWeights = DEFAULT_WEIGHTS
    trace_steps: int = DEFAULT_TRACE_STEPS
    stub_trace_steps: int = DEFAULT_STUB_TRACE_STEPS


def _check_steps(key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"{key} must be a positive integer, got {value!r}")
    return value


def weights_from_dict(raw: Dict[str, Any]) -> SniffWeights:
    known = {f.name: f for f in dataclasses.fields(SniffWeights)}
    unknown = sorted(set(raw) - set(known))
    if unknown:
        raise ConfigError(f"unknown weights: {', '.join(unknown)}")
    values: Dict[str, Any] = {}
    for key, value in raw.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"weight {key} must be a number, got {value!r}")
        if known[key].type in ("int", int):
            if value != int(value):
                raise ConfigError(f"weight {key} must be an integer, got {value!r}")
            value = int(value)
        else:
            value = float(value)
        values[key] = value
    return dataclasses.replace(DEFAULT_WEIGHTS, **values)


def settings_from_dict(raw: Dict[str, Any]) -> Settings:
    if not isinstance(raw, dict):
        raise ConfigError("settings must be a JSON object")
    unknown = sorted(set(raw) - {"weights", "trace_steps", "stub_trace_steps"})
    if unknown:
        raise ConfigError(f"unknown settings: {', '.join(unknown)}")
    weights = raw.get("weights", {})
    if not isinstance(weights, dict):
        raise ConfigError("weights must be a JSON object")
    return Settings(
        weights=weights_from_dict(weights),
        trace_steps=_check_steps("trace_steps", raw.get("trace_steps", DEFAULT_TRACE_STEPS)),
        stub_trace_steps=_check_steps("stub_trace_steps", raw.get("stub_trace_steps", DEFAULT_STUB_TRACE_STEPS)),
    )


def load_settings(path: Optional[str]) -> Settings:
    """Reads settings from path, or returns the defaults when path is None."""
    if path is None:
        return Settings()
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"cannot parse settings file {path}: {e}") from e
    return settings_from_dict(raw)
