#!/usr/bin/env python3
"""
Tests for configuration loading and the client factory.
"""

import logging

import httpx
import pytest
import yaml

from lmchat.config import Configuration, expand_env
from lmchat.factory import create_client
from lmchat.llm.exceptions import UnknownServiceError


def write_config(tmp_path, config):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(config))
    return str(path)


BASE_CONFIG = {
    "llm": {
        "active": "openai",
        "defaults": {"temperature": 0.5, "max_tokens": 100},
        "providers": {
            "openai": {
                "base_path": "https://api.openai.com/v1",
                "model": "gpt-3.5-turbo",
            },
            "mlc": {
                "base_path": "${MLC_AI_API_BASE}",
                "model": "vicuna-v1-7b",
                "requires_key_validation": False,
            },
        },
    },
}


def test_packaged_config_loads():
    config = Configuration()

    registry = config.get_service_registry()
    assert set(registry.names()) == {"openai", "mlc"}
    assert config.active_service == "openai"
    assert config.get_completion_defaults().max_tokens == 256
    assert config.get_logging_config()["level"] == "INFO"


def test_registry_from_yaml_expands_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("MLC_AI_API_BASE", "http://localhost:9000/v1")
    config = Configuration(write_config(tmp_path, BASE_CONFIG))

    mlc = config.get_service_registry().get("mlc")
    assert mlc.base_path == "http://localhost:9000/v1"
    assert mlc.completion_endpoint == "http://localhost:9000/v1/chat/completions"
    assert mlc.requires_key_validation is False


def test_provider_requires_model():
    config = Configuration.from_dict({
        "llm": {"providers": {"broken": {"base_path": "https://x.test"}}}
    })
    with pytest.raises(ValueError, match="llm.providers.broken.model"):
        config.get_service_registry()


def test_empty_providers_rejected():
    config = Configuration.from_dict({"llm": {}})
    with pytest.raises(ValueError, match="at least one provider"):
        config.get_service_registry()


def test_completion_defaults_validated():
    config = Configuration.from_dict({"llm": {"defaults": {"temperature": 5}}})
    with pytest.raises(ValueError, match="temperature"):
        config.get_completion_defaults()

    config = Configuration.from_dict({"llm": {"defaults": {"max_tokens": 0}}})
    with pytest.raises(ValueError, match="max_tokens"):
        config.get_completion_defaults()


def test_completion_defaults_from_yaml():
    defaults = Configuration.from_dict(BASE_CONFIG).get_completion_defaults()
    assert defaults.temperature == 0.5
    assert defaults.max_tokens == 100


def test_api_key_lookup(monkeypatch):
    config = Configuration.from_dict(BASE_CONFIG)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.delenv("MLC_AI_API_KEY", raising=False)

    assert config.llm_api_key == "sk-env"
    assert config.api_key_for("mlc", required=False) == ""
    with pytest.raises(ValueError, match="MLC_AI_API_KEY"):
        config.api_key_for("mlc")


def test_http_timeouts_validated():
    config = Configuration.from_dict({"llm": {"http_client": {"read_timeout": 0}}})
    with pytest.raises(ValueError, match="read_timeout"):
        config.get_http_client_config()

    timeout = Configuration.from_dict({}).get_http_timeout()
    assert timeout.read == 60.0


def test_expand_env(monkeypatch):
    monkeypatch.setenv("HOST_A", "a.test")
    monkeypatch.delenv("HOST_B", raising=False)
    assert expand_env("https://${HOST_A}/v1") == "https://a.test/v1"
    assert expand_env("${HOST_B}/chat") == "/chat"


@pytest.fixture
def restore_root_level():
    root = logging.getLogger()
    level = root.level
    yield root
    root.setLevel(level)


@pytest.mark.asyncio
async def test_create_client_for_active_service(monkeypatch, restore_root_level):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    config = Configuration.from_dict(BASE_CONFIG)

    async with httpx.AsyncClient() as http_client:
        client = create_client(configuration=config, http_client=http_client)

        assert client.profile.name == "openai"
        assert client.api_key == "sk-env"
        assert client.defaults.temperature == 0.5
        assert client.http_client is http_client


@pytest.mark.asyncio
async def test_create_client_local_service_without_key(monkeypatch, restore_root_level):
    monkeypatch.delenv("MLC_AI_API_KEY", raising=False)
    config = Configuration.from_dict(BASE_CONFIG)

    async with httpx.AsyncClient() as http_client:
        client = create_client("mlc", config, http_client=http_client)
        assert client.api_key == ""


def test_create_client_unknown_service(restore_root_level):
    config = Configuration.from_dict(BASE_CONFIG)
    with pytest.raises(UnknownServiceError):
        create_client("nope", config, api_key="x")


@pytest.mark.asyncio
async def test_create_client_applies_logging_section(restore_root_level):
    config = Configuration.from_dict({
        **BASE_CONFIG,
        "logging": {"level": "debug", "colors": False},
    })

    async with httpx.AsyncClient() as http_client:
        create_client("openai", config, api_key="sk-x", http_client=http_client)

    assert restore_root_level.level == logging.DEBUG


def test_logging_config_normalized_and_validated():
    config = Configuration.from_dict({"logging": {"level": "warning"}})
    assert config.get_logging_config() == {"level": "WARNING", "colors": True}

    config = Configuration.from_dict({"logging": {"level": "loud"}})
    with pytest.raises(ValueError, match="logging.level"):
        config.get_logging_config()
