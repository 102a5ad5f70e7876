import json

import pytest

from cbmrev.config import Settings, load_settings
from cbmrev.errors import ConfigError
from cbmrev.sniffers import DEFAULT_WEIGHTS


def _write(tmp_path, payload) -> str:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps(payload), "utf-8")
    return str(path)


def test_defaults() -> None:
    settings = load_settings(None)
    assert settings == Settings()
    assert settings.trace_steps == 10000
    assert settings.stub_trace_steps == 100
    assert settings.weights.basic_load_match == 1.8


def test_overrides(tmp_path) -> None:
    settings = load_settings(_write(tmp_path, {
        "trace_steps": 50,
        "weights": {"basic_load_match": 2, "stub_min_trace_steps": 3},
    }))
    assert settings.trace_steps == 50
    assert settings.stub_trace_steps == 100
    assert settings.weights.basic_load_match == 2.0
    assert settings.weights.stub_min_trace_steps == 3
    assert settings.weights.cart_magic_match == DEFAULT_WEIGHTS.cart_magic_match


@pytest.mark.parametrize("payload", [
    {"colour": "red"},
    {"weights": {"no_such_weight": 1}},
    {"weights": {"basic_load_match": "high"}},
    {"weights": {"stub_min_trace_steps": 2.5}},
    {"weights": []},
    {"trace_steps": 0},
    {"stub_trace_steps": True},
    [1, 2],
])
def test_bad_settings(tmp_path, payload) -> None:
    with pytest.raises(ConfigError):
        load_settings(_write(tmp_path, payload))


def test_bad_json(tmp_path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{", "utf-8")
    with pytest.raises(ConfigError):
        load_settings(str(path))
