"""Type definitions, enums, and content models shared by the turn loop."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing_extensions import Annotated


class StreamingMode(str, Enum):
    """How model output is delivered to the loop"""
    NONE = "none"  # buffered: one non-partial response per model call
    SSE = "sse"  # streamed: delta partials followed by one non-partial response


class FunctionCall(BaseModel):
    """A request from the model to call a named tool"""
    id: Annotated[str | None, Field(default=None, description="Client side id of the call")]
    name: Annotated[str, Field(description="Name of the tool to call")]
    args: Annotated[dict[str, Any], Field(default_factory=dict, description="Call arguments")]


class FunctionResponse(BaseModel):
    """The result of a function call, sent back to the model"""
    id: Annotated[str | None, Field(default=None, description="Id of the originating call")]
    name: Annotated[str, Field(description="Name of the tool that was called")]
    response: Annotated[dict[str, Any], Field(default_factory=dict, description="Result payload")]


class Part(BaseModel):
    """One piece of content: exactly one of text, function call or function response."""
    model_config = ConfigDict(extra="forbid")

    text: str | None = None
    function_call: FunctionCall | None = None
    function_response: FunctionResponse | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "Part":
        filled = [v for v in (self.text, self.function_call, self.function_response) if v is not None]
        if len(filled) != 1:
            raise ValueError("Part must hold exactly one of text, function_call or function_response")
        return self

    @classmethod
    def from_text(cls, text: str) -> "Part":
        return cls(text=text)

    @classmethod
    def from_function_call(cls, name: str, args: dict[str, Any] | None = None, id: str | None = None) -> "Part":
        return cls(function_call=FunctionCall(id=id, name=name, args=args or {}))

    @classmethod
    def from_function_response(cls, name: str, response: dict[str, Any], id: str | None = None) -> "Part":
        return cls(function_response=FunctionResponse(id=id, name=name, response=response))


class Content(BaseModel):
    """An ordered sequence of parts produced by one role"""
    role: Annotated[str | None, Field(default=None, description="'user' or 'model'")]
    parts: Annotated[list[Part], Field(default_factory=list)]

    @property
    def text(self) -> str:
        return "".join(part.text for part in self.parts if part.text is not None)

    @classmethod
    def from_text(cls, text: str, role: str = "user") -> "Content":
        return cls(role=role, parts=[Part.from_text(text)])
