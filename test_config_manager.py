"""
Tests for configuration loading and the custom provider store.
"""

import json

import pytest

from prompt_matrix.models import ProviderConfig
from prompt_matrix.utils import (
    ConfigManager, ConfigurationError, CustomProviderStore, is_configured, normalize_base_url,
)


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "config.json"


def test_default_config_written_when_absent(config_path):
    config = ConfigManager(str(config_path), environ={}).load_config()

    assert config.provider_config.provider == "deepseek"
    assert config.provider_config.model == "deepseek-chat"
    assert config.provider_config.base_url == "https://api.deepseek.com/v1"
    assert config.router_config.max_history == 50
    assert config_path.exists()
    assert not is_configured(config.provider_config)


def test_environment_bootstrap(config_path):
    environ = {"PROMPT_MATRIX_API_KEY": "sk-env", "PROMPT_MATRIX_BASE_URL": "https://proxy.example.com/"}
    config = ConfigManager(str(config_path), environ=environ).load_config()

    assert config.provider_config.api_key == "sk-env"
    assert config.provider_config.base_url == "https://proxy.example.com/v1"
    assert is_configured(config.provider_config)
    assert not config_path.exists()


def test_stored_values_win_over_environment(config_path):
    config_path.write_text(json.dumps({
        "provider_config": {"provider": "openai", "api_key": "sk-file", "model": "gpt-4o", "base_url": ""},
    }), encoding="utf-8")
    environ = {"PROMPT_MATRIX_API_KEY": "sk-env", "PROMPT_MATRIX_MODEL": "deepseek-reasoner"}

    config = ConfigManager(str(config_path), environ=environ).load_config()

    assert config.provider_config.provider == "openai"
    assert config.provider_config.api_key == "sk-file"
    assert config.provider_config.model == "gpt-4o"
    assert config.provider_config.base_url == "https://api.openai.com/v1"


def test_empty_stored_values_do_not_hide_environment(config_path):
    config_path.write_text(json.dumps({"provider_config": {"api_key": ""}}), encoding="utf-8")

    config = ConfigManager(str(config_path), environ={"PROMPT_MATRIX_API_KEY": "sk-env"}).load_config()
    assert config.provider_config.api_key == "sk-env"


def test_update_config_persists(config_path):
    manager = ConfigManager(str(config_path), environ={})
    manager.load_config()

    manager.update_config({"provider_config": {"api_key": "sk-new", "temperature": 0.3}})

    reloaded = ConfigManager(str(config_path), environ={}).load_config()
    assert reloaded.provider_config.api_key == "sk-new"
    assert reloaded.provider_config.temperature == 0.3


@pytest.mark.parametrize("updates", [
    {"provider_config": {"temperature": 3}},
    {"provider_config": {"top_p": 0}},
    {"provider_config": {"max_tokens": -1}},
    {"provider_config": {"provider": "anthropic"}},
    {"router_config": {"confidence_threshold": 1.5}},
    {"router_config": {"max_history": 0}},
])
def test_invalid_updates_rejected(config_path, updates):
    manager = ConfigManager(str(config_path), environ={})
    manager.load_config()

    with pytest.raises(ConfigurationError):
        manager.update_config(updates)


def test_unknown_field_rejected(config_path):
    config_path.write_text(json.dumps({"provider_config": {"colour": "blue"}}), encoding="utf-8")
    with pytest.raises(ConfigurationError):
        ConfigManager(str(config_path), environ={}).load_config()


def test_normalize_base_url():
    assert normalize_base_url("deepseek", "") == "https://api.deepseek.com/v1"
    assert normalize_base_url("openai", "https://api.openai.com///") == "https://api.openai.com/v1"
    assert normalize_base_url("openrouter", "https://openrouter.ai/api/v1/") == "https://openrouter.ai/api/v1"
    assert normalize_base_url("gemini", "https://example.com/") == "https://example.com"
    assert normalize_base_url("custom", "http://localhost:8000/") == "http://localhost:8000"
    assert normalize_base_url("custom", None) == ""


def test_is_configured():
    assert is_configured(ProviderConfig(api_key="k", model="m"))
    assert not is_configured(ProviderConfig(api_key="", model="m"))
    assert not is_configured(ProviderConfig(api_key="k", model=""))


def test_provider_store_roundtrip(tmp_path):
    path = tmp_path / "providers.json"
    store = CustomProviderStore(str(path))

    provider = store.add_provider("Local", "http://localhost:8000/v1", ["qwen"], top_p=0.8)
    assert provider.id.startswith("provider_")
    assert store.update_provider(provider.id, {"name": "Local vLLM"})
    assert not store.update_provider("missing", {"name": "x"})

    reloaded = CustomProviderStore(str(path))
    assert reloaded.get_provider(provider.id).name == "Local vLLM"
    assert reloaded.get_provider(provider.id).top_p == 0.8

    assert reloaded.delete_provider(provider.id)
    assert not reloaded.delete_provider(provider.id)
    assert CustomProviderStore(str(path)).get_providers() == []


def test_provider_store_tolerates_corrupt_file(tmp_path):
    path = tmp_path / "providers.json"
    path.write_text("not json", encoding="utf-8")

    assert CustomProviderStore(str(path)).get_providers() == []
