from .base import BaseAgent
from .llm_agent import (
    LlmAgent,
    InstructionProvider,
    BeforeModelCallback,
    AfterModelCallback,
    BeforeToolCallback,
    AfterToolCallback,
)
from .registry import AgentRegistry
