import json
import logging
from contextlib import aclosing
from typing import Any, AsyncGenerator

from azure.identity import DefaultAzureCredential, get_bearer_token_provider
from openai import AsyncAzureOpenAI, AsyncOpenAI

from agenturn.config.llm import AzureOpenAIChatConfig, DeepSeekChatConfig, OpenAIChatConfig
from .base import BaseLlm
from .request import ModelRequest
from .response import ModelResponse, UsageMetadata
from ..types import Content, Part

logger = logging.getLogger(__name__)

# Type alias for OpenAI clients
AsyncOpenAIClient = AsyncAzureOpenAI | AsyncOpenAI


def to_openai_messages(request: ModelRequest) -> list[dict]:
    """Convert the request conversation into chat completion messages."""
    messages: list[dict] = []
    if request.system_instruction:
        messages.append({'role': 'system', 'content': request.system_instruction})
    for content in request.contents:
        if content.role == "model":
            message: dict[str, Any] = {'role': 'assistant', 'content': content.text or None}
            tool_calls = [
                {
                    'id': part.function_call.id or part.function_call.name,
                    'type': 'function',
                    'function': {
                        'name': part.function_call.name,
                        'arguments': json.dumps(part.function_call.args, ensure_ascii=False),
                    },
                }
                for part in content.parts if part.function_call
            ]
            if tool_calls:
                message['tool_calls'] = tool_calls
            messages.append(message)
            continue
        for part in content.parts:
            if part.function_response:
                messages.append({
                    'role': 'tool',
                    'tool_call_id': part.function_response.id or part.function_response.name,
                    'content': json.dumps(part.function_response.response, ensure_ascii=False, default=str),
                })
        if content.text:
            messages.append({'role': 'user', 'content': content.text})
    return messages


def _parse_arguments(arguments: str | None) -> dict[str, Any]:
    if not arguments:
        return {}
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError:
        logger.warning(f"Model produced invalid tool arguments: {arguments}")
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _usage(usage) -> UsageMetadata | None:
    if usage is None:
        return None
    return UsageMetadata(
        prompt_token_count=usage.prompt_tokens,
        candidates_token_count=usage.completion_tokens,
        total_token_count=usage.total_tokens,
    )


def _build_content(text: str, calls: list[tuple[str | None, str, str | None]]) -> Content | None:
    parts = []
    if text:
        parts.append(Part.from_text(text))
    for call_id, name, arguments in calls:
        parts.append(Part.from_function_call(name, _parse_arguments(arguments), id=call_id))
    return Content(role="model", parts=parts) if parts else None


class OpenAIModel(BaseLlm):
    """Backend on the OpenAI chat completions API (OpenAI, Azure OpenAI, DeepSeek)."""

    def __init__(
            self,
            client: AsyncOpenAIClient,
            model: str,
            *,
            json_supports: bool = False,
            chat_params: dict | None = None,
    ):
        super().__init__(model)
        self.client = client
        self.json_supports = json_supports
        self.chat_params: dict = chat_params or {}

    @classmethod
    def from_config(cls, config: AzureOpenAIChatConfig | OpenAIChatConfig | DeepSeekChatConfig) -> 'OpenAIModel':
        if isinstance(config, AzureOpenAIChatConfig):
            if config.api_key:
                credential = {"api_key": config.api_key}
            else:
                credential = {
                    "azure_ad_token_provider": get_bearer_token_provider(
                        DefaultAzureCredential(),
                        "https://cognitiveservices.azure.com/.default"
                    )
                }
            client = AsyncAzureOpenAI(
                azure_endpoint=config.endpoint,
                azure_deployment=config.deployment,
                api_version=config.api_version,
                timeout=config.timeout,
                **credential,
            )
        else:
            client = AsyncOpenAI(
                base_url=config.endpoint,
                api_key=config.api_key,
                timeout=config.timeout,
            )
        return cls(client, config.model, json_supports=config.json_supports, chat_params=config.chat_params_oai())

    def _params(self, request: ModelRequest) -> dict[str, Any]:
        params = {key: value for key, value in self.chat_params.items() if value is not None}
        config = request.config
        if config.temperature is not None:
            params['temperature'] = config.temperature
        if config.top_p is not None:
            params['top_p'] = config.top_p
        if config.max_output_tokens is not None:
            params['max_completion_tokens'] = config.max_output_tokens
        if config.stop:
            params['stop'] = config.stop
        if request.tools:
            params['tools'] = [declaration.to_openai_tool() for declaration in request.tools]
        if config.response_schema and self.json_supports:
            params['response_format'] = {
                "type": "json_schema",
                "json_schema": {"name": "structured_response", "schema": config.response_schema},
            }
        return params

    async def generate(self, request: ModelRequest, stream: bool = False) -> AsyncGenerator[ModelResponse, None]:
        messages = to_openai_messages(request)
        params = self._params(request)
        logger.debug(f"Calling {self.model} with {len(messages)} messages, stream={stream}")

        if not stream:
            try:
                resp = await self.client.chat.completions.create(
                    messages=messages,
                    model=self.model,
                    **params,
                )
            except Exception as e:
                logger.error(f"Model call to {self.model} failed: {e}")
                yield ModelResponse.from_error(e, model=self.model)
                return
            choice = resp.choices[0]
            calls = [
                (call.id, call.function.name, call.function.arguments)
                for call in (choice.message.tool_calls or [])
            ]
            yield ModelResponse(
                content=_build_content(choice.message.content or "", calls),
                usage_metadata=_usage(resp.usage),
                finish_reason=choice.finish_reason,
                turn_complete=True,
            )
            return

        text = ""
        # index -> [id, name, arguments]
        calls: dict[int, list] = {}
        finish_reason = None
        usage = None
        try:
            response_stream = await self.client.chat.completions.create(
                messages=messages,
                model=self.model,
                stream=True,
                stream_options={"include_usage": True},
                **params,
            )
            async with aclosing(response_stream.__aiter__()) as chunks:
                async for chunk in chunks:
                    if chunk.usage is not None:
                        usage = chunk.usage
                    if not chunk.choices:
                        continue
                    choice = chunk.choices[0]
                    if choice.finish_reason:
                        finish_reason = choice.finish_reason
                    delta = choice.delta
                    for call in delta.tool_calls or []:
                        entry = calls.setdefault(call.index, [None, "", ""])
                        if call.id:
                            entry[0] = call.id
                        if call.function and call.function.name:
                            entry[1] += call.function.name
                        if call.function and call.function.arguments:
                            entry[2] += call.function.arguments
                    if delta.content:
                        text += delta.content
                        yield ModelResponse(content=Content.from_text(delta.content, role="model"), partial=True)
        except Exception as e:
            logger.error(f"Streamed model call to {self.model} failed: {e}")
            yield ModelResponse.from_error(e, model=self.model)
            return

        yield ModelResponse(
            content=_build_content(text, [tuple(calls[index]) for index in sorted(calls)]),
            usage_metadata=_usage(usage),
            finish_reason=finish_reason or "stop",
            turn_complete=True,
        )
