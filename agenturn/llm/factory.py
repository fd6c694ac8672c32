from agenturn.config.llm import ChatConfig, AzureOpenAIChatConfig, OpenAIChatConfig, DeepSeekChatConfig
from agenturn.exceptions import NoChatLLMConfigError, UnsupportedModelConfigError
from .base import BaseLlm


class ModelFactory:
    def __init__(self, default: BaseLlm | None = None):
        self.default = default

    @classmethod
    def build(cls, config: ChatConfig) -> BaseLlm:
        if isinstance(config, AzureOpenAIChatConfig | OpenAIChatConfig | DeepSeekChatConfig):
            from .oai import OpenAIModel
            return OpenAIModel.from_config(config)
        raise UnsupportedModelConfigError(config)

    def get(self, config: ChatConfig | None = None) -> BaseLlm:
        if config:
            return self.build(config)
        if self.default:
            return self.default
        raise NoChatLLMConfigError()
