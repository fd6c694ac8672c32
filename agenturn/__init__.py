"""Agent turn-execution loop.

Drives one agent through repeated cycles of building a model request,
calling the model (buffered or streamed), running requested tools and
handing off to other agents of the tree, until a final answer is produced.

Core components:
- Runner: Entry point owning the conversation's event log and state
- LlmAgent: Model-driven agent; BaseAgent for custom agents
- BaseLlmFlow / SingleFlow / AutoFlow: The step driver and its processor sets
- InvocationContext: State of one invocation, shared across transfers

Events and model I/O:
- Event, EventActions, EventLog
- ModelRequest, ModelResponse, BaseLlm backends (LangChain, OpenAI)

Tools:
- BaseTool, FunctionTool, ToolContext, DefaultToolDispatcher
"""

# Entry point
from .runner import Runner

# Agents
from .agents import AgentRegistry, BaseAgent, LlmAgent

# Invocation state
from .context import CallbackContext, InvocationContext, ReadonlyContext

# Events
from .events import Event, EventActions, EventLog

# Errors
from .exceptions import (
    AgentNotFoundError,
    AgentTurnError,
    FlowError,
    LlmCallsLimitExceededError,
    PartialFinalEventError,
)

# Flows
from .flows import AutoFlow, BaseLlmFlow, SingleFlow

# Model I/O
from .llm import BaseLlm, LangChainModel, ModelRequest, ModelResponse, OpenAIModel

# Tools
from .tool import BaseTool, DefaultToolDispatcher, FunctionTool, ToolContext

# Essential types for public API
from .config import RunConfig
from .types import Content, FunctionCall, FunctionResponse, Part, StreamingMode
