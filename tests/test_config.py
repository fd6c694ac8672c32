"""Tests for configuration loading and the model factory."""

import pytest
from pydantic import ValidationError

from agenturn.config import (
    AgentTurnConfig,
    AzureOpenAIChatConfig,
    ChatLLMType,
    DeepSeekChatConfig,
    OpenAIChatConfig,
    RunConfig,
    load_config,
    validate_chat_config,
)
from agenturn.exceptions import NoChatLLMConfigError, UnsupportedModelConfigError
from agenturn.llm import ModelFactory, OpenAIModel
from agenturn.types import StreamingMode

from helpers import ScriptedLlm


CONFIG_YAML = """
chat_llm:
  type: openai
  model: gpt-4o-mini
  api_key: ${AGENTURN_TEST_KEY}
  temperature: 0.3
run:
  streaming_mode: sse
  max_llm_calls: 20
log_directory: logs
"""


# ---------------------------------------------------------------------------
# Config loading
# ---------------------------------------------------------------------------


class TestLoadConfig:
    def test_load_with_env_interpolation(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AGENTURN_TEST_KEY", "sk-test")
        path = tmp_path / "agenturn.yaml"
        path.write_text(CONFIG_YAML, encoding="utf-8")

        config = load_config(str(path))

        assert isinstance(config.chat_llm, OpenAIChatConfig)
        assert config.chat_llm.api_key == "sk-test"
        assert config.chat_llm.temperature == 0.3
        assert config.run.streaming_mode == StreamingMode.SSE
        assert config.run.max_llm_calls == 20
        assert config.log_directory == "logs"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        config = load_config(str(path))

        assert config == AgentTurnConfig()
        assert config.run == RunConfig()
        assert config.chat_llm is None


class TestChatConfig:
    def test_discriminated_union(self):
        azure = validate_chat_config({
            "type": "azure_openai",
            "endpoint": "https://example.openai.azure.com",
            "deployment": "gpt4",
            "api_version": "2024-06-01",
            "model": "gpt-4o",
            "api_key": "key",
        })
        deepseek = validate_chat_config({"type": "deepseek", "model": "deepseek-chat", "api_key": "key"})

        assert isinstance(azure, AzureOpenAIChatConfig)
        assert isinstance(deepseek, DeepSeekChatConfig)
        assert deepseek.endpoint == "https://api.deepseek.com"

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            validate_chat_config({"type": "unknown", "model": "x"})

    def test_chat_params(self):
        config = OpenAIChatConfig(type=ChatLLMType.OpenAI, model="m", max_tokens=100, temperature=0.5, top_p=0.9)
        assert config.chat_params_oai() == {"max_completion_tokens": 100, "temperature": 0.5, "top_p": 0.9}


# ---------------------------------------------------------------------------
# ModelFactory
# ---------------------------------------------------------------------------


class TestModelFactory:
    def test_build_openai(self):
        config = OpenAIChatConfig(type=ChatLLMType.OpenAI, model="gpt-4o-mini", api_key="sk-test")

        model = ModelFactory.build(config)

        assert isinstance(model, OpenAIModel)
        assert model.model == "gpt-4o-mini"
        assert model.chat_params["max_completion_tokens"] == 4000

    def test_build_azure_with_key(self):
        config = validate_chat_config({
            "type": "azure_openai",
            "endpoint": "https://example.openai.azure.com",
            "deployment": "gpt4",
            "api_version": "2024-06-01",
            "model": "gpt-4o",
            "api_key": "key",
        })

        assert isinstance(ModelFactory.build(config), OpenAIModel)

    def test_unsupported_config(self):
        with pytest.raises(UnsupportedModelConfigError):
            ModelFactory.build(object())

    def test_get_falls_back_to_default(self):
        default = ScriptedLlm()
        assert ModelFactory(default).get() is default
        with pytest.raises(NoChatLLMConfigError):
            ModelFactory().get()
