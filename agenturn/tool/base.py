"""Tool interfaces for the turn loop.

This module provides:
- BaseTool: Abstract base class for all tools
- FunctionTool: Tool backed by a plain (sync or async) Python callable
"""

import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable, get_type_hints

from pydantic import BaseModel, ConfigDict, create_model

from agenturn.llm.request import FunctionDeclaration, ModelRequest
from agenturn.tool.context import ToolContext


class BaseTool(ABC):
    """Abstract base class for all tools"""

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of the tool, used for identification"""
        pass

    @property
    def description(self) -> str | None:
        """Description of what the tool does"""
        return None

    @property
    def is_long_running(self) -> bool:
        """Whether the call returns before the work is done"""
        return False

    def declaration(self) -> FunctionDeclaration | None:
        """Declaration advertised to the model; None keeps the tool off the request"""
        return None

    async def process_request(self, tool_context: ToolContext, request: ModelRequest) -> None:
        """Attach this tool to the outgoing model request."""
        request.append_tools([self])

    @abstractmethod
    async def run(self, args: dict[str, Any], tool_context: ToolContext) -> Any:
        """Execute the tool with the arguments chosen by the model"""
        raise NotImplementedError("BaseTool subclasses must implement the run method")


class FunctionTool(BaseTool):
    """Wraps a callable. Arguments are validated against its signature.

    A parameter named ``tool_context`` receives the ToolContext and is hidden
    from the model.
    """

    _CONTEXT_PARAM = "tool_context"

    def __init__(
            self,
            func: Callable[..., Any],
            *,
            name: str | None = None,
            description: str | None = None,
            is_long_running: bool = False,
    ):
        self.func = func
        self._name = name or func.__name__
        self._description = description if description is not None else inspect.getdoc(func)
        self._is_long_running = is_long_running
        self._signature = inspect.signature(func)
        self._args_model = self._build_args_model()

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str | None:
        return self._description

    @property
    def is_long_running(self) -> bool:
        return self._is_long_running

    def _build_args_model(self) -> type[BaseModel]:
        try:
            hints = get_type_hints(self.func)
        except (NameError, TypeError):
            hints = {}
        fields: dict[str, Any] = {}
        for param in self._signature.parameters.values():
            if param.name == self._CONTEXT_PARAM or param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            annotation = hints.get(param.name, Any)
            default = ... if param.default is param.empty else param.default
            fields[param.name] = (annotation, default)
        return create_model(
            f"{self._name}_args",
            __config__=ConfigDict(arbitrary_types_allowed=True),
            **fields,
        )

    def declaration(self) -> FunctionDeclaration:
        schema = self._args_model.model_json_schema()
        schema.pop("title", None)
        return FunctionDeclaration(name=self.name, description=self.description, parameters=schema)

    async def run(self, args: dict[str, Any], tool_context: ToolContext) -> Any:
        validated = self._args_model.model_validate(args)
        kwargs = {key: getattr(validated, key) for key in type(validated).model_fields}
        if self._CONTEXT_PARAM in self._signature.parameters:
            kwargs[self._CONTEXT_PARAM] = tool_context
        result = self.func(**kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result
