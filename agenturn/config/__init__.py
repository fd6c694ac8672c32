import logging

from pyaml_env import parse_config as parse_config_with_env
from pydantic import BaseModel, Field
from typing_extensions import Annotated

from agenturn.config.llm import ChatConfig, ChatLLMType, OpenAIChatConfig, AzureOpenAIChatConfig, \
    DeepSeekChatConfig, validate_chat_config
from agenturn.config.run import RunConfig

logger = logging.getLogger(__name__)


class AgentTurnConfig(BaseModel):
    chat_llm: Annotated[ChatConfig | None, Field(default=None)]
    run: Annotated[RunConfig, Field(default_factory=RunConfig)]
    log_directory: Annotated[str | None, Field(
        description="Directory for the model call ledger; unset disables it",
        default=None,
    )]


def load_config(config_path: str) -> AgentTurnConfig:
    """Load a YAML config file, expanding ${ENV} references."""
    with open(config_path, 'r', encoding='utf-8') as f:
        data = parse_config_with_env(data=f, tag=None)
    config = AgentTurnConfig.model_validate(data or {})
    logger.debug(f"Loaded config: {config}")
    return config


__all__ = [
    "AgentTurnConfig",
    "RunConfig",
    "ChatConfig",
    "ChatLLMType",
    "OpenAIChatConfig",
    "AzureOpenAIChatConfig",
    "DeepSeekChatConfig",
    "load_config",
    "validate_chat_config",
]
