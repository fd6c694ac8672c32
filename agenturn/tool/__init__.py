"""Tool subpackage for the turn loop.

This package provides the core tool abstractions:
- BaseTool: Abstract base class for all tools
- FunctionTool: Tool backed by a Python callable
- ToolContext: Per-call context through which tools steer the loop
- ToolDispatcher / DefaultToolDispatcher: Tool resolution for one cycle
"""

from .base import BaseTool, FunctionTool
from .context import ToolContext
from .dispatcher import (
    CLIENT_FUNCTION_CALL_ID_PREFIX,
    REQUEST_CREDENTIAL_FUNCTION_CALL_NAME,
    DefaultToolDispatcher,
    ToolDispatcher,
    generate_auth_event,
    get_long_running_function_calls,
    populate_client_function_call_id,
    remove_client_function_call_id,
)
from .transfer import TRANSFER_TO_AGENT_TOOL_NAME, transfer_to_agent, transfer_to_agent_tool

__all__ = [
    # Core abstractions
    "BaseTool",
    "FunctionTool",
    "ToolContext",

    # Resolution
    "ToolDispatcher",
    "DefaultToolDispatcher",
    "generate_auth_event",
    "get_long_running_function_calls",
    "populate_client_function_call_id",
    "remove_client_function_call_id",
    "CLIENT_FUNCTION_CALL_ID_PREFIX",
    "REQUEST_CREDENTIAL_FUNCTION_CALL_NAME",

    # Agent transfer
    "transfer_to_agent",
    "transfer_to_agent_tool",
    "TRANSFER_TO_AGENT_TOOL_NAME",
]
