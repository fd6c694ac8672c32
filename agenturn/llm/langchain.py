import json
import logging
from contextlib import aclosing
from typing import Any, AsyncGenerator

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, AIMessageChunk, BaseMessage, HumanMessage, SystemMessage, ToolMessage

from .base import BaseLlm
from .request import ModelRequest
from .response import ModelResponse, UsageMetadata
from ..types import Content, Part

logger = logging.getLogger(__name__)


def _call_key(call_id: str | None, name: str) -> str:
    # langchain pairs tool messages with calls by id; fall back to the name when the model gave none
    return call_id or name


def to_langchain_messages(request: ModelRequest) -> list[BaseMessage]:
    """Convert the request conversation into langchain-core messages."""
    messages: list[BaseMessage] = []
    if request.system_instruction:
        messages.append(SystemMessage(content=request.system_instruction))
    for content in request.contents:
        if content.role == "model":
            tool_calls = [
                {"name": part.function_call.name, "args": part.function_call.args,
                 "id": _call_key(part.function_call.id, part.function_call.name)}
                for part in content.parts if part.function_call
            ]
            messages.append(AIMessage(content=content.text, tool_calls=tool_calls))
            continue
        for part in content.parts:
            if part.function_response:
                messages.append(ToolMessage(
                    content=json.dumps(part.function_response.response, ensure_ascii=False, default=str),
                    tool_call_id=_call_key(part.function_response.id, part.function_response.name),
                    name=part.function_response.name,
                ))
        if content.text:
            messages.append(HumanMessage(content=content.text))
    return messages


def _message_text(message: BaseMessage) -> str:
    if isinstance(message.content, str):
        return message.content
    # content blocks
    return "".join(
        block if isinstance(block, str) else block.get("text", "")
        for block in message.content
    )


def _usage(message: AIMessage) -> UsageMetadata | None:
    usage = getattr(message, "usage_metadata", None)
    if not usage:
        return None
    return UsageMetadata(
        prompt_token_count=usage.get("input_tokens"),
        candidates_token_count=usage.get("output_tokens"),
        total_token_count=usage.get("total_tokens"),
    )


def _finish_reason(message: AIMessage) -> str:
    metadata = message.response_metadata or {}
    return metadata.get("finish_reason") or metadata.get("stop_reason") or "STOP"


def from_langchain_message(message: AIMessage) -> ModelResponse:
    """Build the terminal response from a complete (or fully aggregated) message."""
    parts = []
    text = _message_text(message)
    if text:
        parts.append(Part.from_text(text))
    for call in message.tool_calls:
        parts.append(Part.from_function_call(call["name"], call.get("args") or {}, id=call.get("id")))
    return ModelResponse(
        content=Content(role="model", parts=parts) if parts else None,
        usage_metadata=_usage(message),
        finish_reason=_finish_reason(message),
        turn_complete=True,
    )


class LangChainModel(BaseLlm):
    """Backend adapter for any langchain-core chat model.

    Buffered calls go through ``ainvoke``; streamed calls go through
    ``astream``, with every text chunk forwarded as a partial delta and the
    aggregated message sent as the terminal response.
    """

    def __init__(self, chat_llm: BaseChatModel, model: str | None = None):
        super().__init__(model or getattr(chat_llm, "model_name", None) or type(chat_llm).__name__)
        self.chat_llm = chat_llm

    def _bound_llm(self, request: ModelRequest):
        if not request.tools:
            return self.chat_llm
        return self.chat_llm.bind_tools([declaration.to_openai_tool() for declaration in request.tools])

    def _invoke_kwargs(self, request: ModelRequest) -> dict[str, Any]:
        invoke_kwargs: dict[str, Any] = {}
        if request.config.stop:
            invoke_kwargs["stop"] = request.config.stop
        if request.config.response_schema and getattr(self.chat_llm, '_json_supports', True):
            invoke_kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": "structured_response",
                    "schema": request.config.response_schema,
                },
            }
        return invoke_kwargs

    async def generate(self, request: ModelRequest, stream: bool = False) -> AsyncGenerator[ModelResponse, None]:
        messages = to_langchain_messages(request)
        llm = self._bound_llm(request)
        invoke_kwargs = self._invoke_kwargs(request)
        logger.debug(f"Calling {self.model} with {len(messages)} messages, stream={stream}")

        if not stream:
            try:
                result: AIMessage = await llm.ainvoke(messages, **invoke_kwargs)
            except Exception as e:
                logger.error(f"Model call to {self.model} failed: {e}")
                yield ModelResponse.from_error(e, model=self.model)
                return
            yield from_langchain_message(result)
            return

        aggregated: AIMessageChunk | None = None
        try:
            async with aclosing(llm.astream(messages, **invoke_kwargs)) as chunks:
                async for chunk in chunks:
                    aggregated = chunk if aggregated is None else aggregated + chunk
                    text = _message_text(chunk)
                    if text:
                        yield ModelResponse(content=Content.from_text(text, role="model"), partial=True)
        except Exception as e:
            logger.error(f"Streamed model call to {self.model} failed: {e}")
            yield ModelResponse.from_error(e, model=self.model)
            return

        if aggregated is None:
            yield ModelResponse(finish_reason="STOP", turn_complete=True)
            return
        yield from_langchain_message(aggregated)
