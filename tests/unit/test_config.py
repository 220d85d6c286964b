# pylint: disable=missing-module-docstring,missing-function-docstring
import pytest

from config import AppConfig


_VARS = (
    "ENV",
    "LOG_LEVEL",
    "ENABLE_JSON_LOGS",
    "AGENT_HOST_URL",
    "AGENT_STREAM_CHANNEL",
    "AGENT_PROVIDER",
    "AGENT_MODEL",
    "AGENT_INVOKE_TIMEOUT_S",
    "CATALOG_PAGE_LIMIT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = AppConfig.load_from_env()

    assert config.env == "dev"
    assert config.agent_stream_channel == "agent-stream"
    assert config.agent_invoke_timeout_s == 30.0
    assert config.catalog_page_limit == 50
    assert config.enable_json_logs is True


def test_overrides(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("AGENT_HOST_URL", "ws://10.0.0.2:9000/agent")
    monkeypatch.setenv("AGENT_MODEL", "gpt-4o")
    monkeypatch.setenv("AGENT_INVOKE_TIMEOUT_S", "2.5")
    monkeypatch.setenv("CATALOG_PAGE_LIMIT", "10")
    monkeypatch.setenv("ENABLE_JSON_LOGS", "0")

    config = AppConfig.load_from_env()

    assert config.agent_host_url == "ws://10.0.0.2:9000/agent"
    assert config.agent_model == "gpt-4o"
    assert config.agent_invoke_timeout_s == 2.5
    assert config.catalog_page_limit == 10
    assert config.enable_json_logs is False


def test_bad_number_raises(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CATALOG_PAGE_LIMIT", "many")

    with pytest.raises(ValueError):
        AppConfig.load_from_env()
