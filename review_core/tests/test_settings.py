import dataclasses
from datetime import date

import pytest
from pydantic import ValidationError

from review_core.config.session import SessionConfig
from review_core.config.settings import Settings
from review_core.providers.registry import DEFAULT_TOKEN_LIMITS, get_token_limits


def test_settings_reads_credential_from_environment(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("AZURE_API_KEY", "azure-env-key-0001")
    monkeypatch.setenv("REVIEW_OPENAI_RETRIES", "2")
    cfg = Settings()
    assert cfg.azure_api_key == "azure-env-key-0001"
    assert cfg.openai_retries == 2


def test_settings_yaml_source_has_lower_priority_than_env(monkeypatch, tmp_path):
    config_file = tmp_path / "bot.yaml"
    config_file.write_text("language: ja-JP\nopenai_heavy_model: gpt-4-32k\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("REVIEW_CONFIG_FILE", str(config_file))
    monkeypatch.setenv("REVIEW_OPENAI_HEAVY_MODEL", "gpt-4")
    cfg = Settings()
    assert cfg.language == "ja-JP"
    assert cfg.openai_heavy_model == "gpt-4"


def test_settings_validation(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(ValidationError):
        Settings(azure_api_key="short")
    with pytest.raises(ValidationError):
        Settings(openai_retries=-1)
    with pytest.raises(ValidationError):
        Settings(openai_model_temperature=3.0)
    assert Settings(api_base_url="https://example.com/v1/").api_base_url == "https://example.com/v1"


def test_token_limits_per_model():
    assert get_token_limits("gpt-4-32k").max_tokens == 32600
    assert get_token_limits("gpt-3.5-turbo-16k").response_tokens == 3000
    assert get_token_limits("gpt-4").request_tokens == 8000 - 2000 - 100
    assert get_token_limits("unknown-model") == DEFAULT_TOKEN_LIMITS


def test_session_config_from_settings(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    cfg = Settings(
        azure_api_key="azure-init-key-0001",
        openai_heavy_model="gpt-4-32k",
        openai_timeout_ms=30000,
        openai_retries=3,
        language="fr-FR",
    )
    config = SessionConfig.from_settings(cfg)
    assert config.model == "gpt-4-32k"
    assert config.token_limits.max_tokens == 32600
    assert config.timeout_ms == 30000
    assert config.retries == 3
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.retries = 10


def test_session_config_rejects_negative_retries():
    with pytest.raises(ValueError):
        SessionConfig(system_message="s", model="gpt-4", retries=-1)


def test_build_system_message():
    config = SessionConfig(system_message="Be strict.", model="gpt-4", language="de-DE")
    msg = config.build_system_message(today=date(2024, 5, 1))
    assert msg.startswith("Be strict.\n")
    assert "Knowledge cutoff: 2021-09-01" in msg
    assert "Current date: 2024-05-01" in msg
    assert msg.rstrip().endswith("IMPORTANT: Entire response must be in the language with ISO code: de-DE")
