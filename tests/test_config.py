"""Environment-driven configuration."""
from pathlib import Path

import pytest

from src.config import Config, get_config, reset_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "HOOK_JANITOR_RULES_DIR",
        "HOOK_JANITOR_SIMILARITY_THRESHOLD",
        "HOOK_JANITOR_NAME_WEIGHT",
        "HOOK_JANITOR_PARAM_WEIGHT",
        "HOOK_JANITOR_SUGGESTION_LIMIT",
        "HOOK_JANITOR_WORKERS",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


def test_defaults():
    config = Config()
    settings = config.similarity_settings()
    assert (settings.name_weight, settings.param_weight, settings.threshold, settings.limit) == (0.6, 0.4, 0.5, 5)
    assert config.rules_dir == config.project_root / "rules" / "hooks"
    assert config.workers == 4


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("HOOK_JANITOR_RULES_DIR", str(tmp_path))
    monkeypatch.setenv("HOOK_JANITOR_SIMILARITY_THRESHOLD", "0.7")
    monkeypatch.setenv("HOOK_JANITOR_SUGGESTION_LIMIT", "3")
    config = Config()
    assert config.rules_dir == Path(tmp_path)
    assert config.similarity_settings().threshold == 0.7
    assert config.similarity_settings().limit == 3


@pytest.mark.parametrize("name,value", [
    ("HOOK_JANITOR_SIMILARITY_THRESHOLD", "1.5"),
    ("HOOK_JANITOR_NAME_WEIGHT", "heavy"),
    ("HOOK_JANITOR_SUGGESTION_LIMIT", "0"),
    ("HOOK_JANITOR_WORKERS", "-2"),
])
def test_invalid_values_fail_fast(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=name):
        Config()


def test_singleton_is_cached_until_reset():
    first = get_config()
    assert get_config() is first
    reset_config()
    assert get_config() is not first
