from typing import Any

from pydantic import BaseModel, Field
from typing_extensions import Annotated

from agenturn.types import Content, FunctionCall, FunctionResponse


class UsageMetadata(BaseModel):
    """Token accounting reported by the backend for one model call"""
    prompt_token_count: int | None = None
    candidates_token_count: int | None = None
    total_token_count: int | None = None


class ModelResponse(BaseModel):
    """One response, or one streamed chunk, produced by a model backend.

    In streamed mode ``partial`` chunks carry only the delta content; the last
    response of a call is always non-partial and carries the finish metadata.
    """
    content: Annotated[Content | None, Field(default=None)]
    usage_metadata: Annotated[UsageMetadata | None, Field(default=None)]
    finish_reason: Annotated[str | None, Field(default=None)]
    error_code: Annotated[str | None, Field(default=None)]
    error_message: Annotated[str | None, Field(default=None)]
    interrupted: Annotated[bool | None, Field(default=None)]
    partial: Annotated[bool | None, Field(default=None)]
    turn_complete: Annotated[bool | None, Field(default=None)]
    custom_metadata: Annotated[dict[str, Any] | None, Field(default=None)]

    def get_function_calls(self) -> list[FunctionCall]:
        if not self.content:
            return []
        return [part.function_call for part in self.content.parts if part.function_call]

    def get_function_responses(self) -> list[FunctionResponse]:
        if not self.content:
            return []
        return [part.function_response for part in self.content.parts if part.function_response]

    @classmethod
    def from_error(cls, error: BaseException | str, error_code: str = "UNKNOWN_ERROR",
                   model: str | None = None) -> "ModelResponse":
        """Turn a backend failure into a response the loop can finalize as an event."""
        message = str(error)
        return cls(
            error_code=error_code,
            error_message=f"LLM call failed for model {model or 'unknown'}: {message}",
            content=Content.from_text(f"Error: {message}", role="model"),
            finish_reason="STOP",
        )
