"""Shared fixtures for the turn-loop tests: a scripted backend and small builders."""

from collections import deque
from contextlib import aclosing
from typing import Any, AsyncGenerator

from agenturn.agents import AgentRegistry, BaseAgent
from agenturn.config import RunConfig
from agenturn.context import InvocationContext
from agenturn.llm import BaseLlm, ModelRequest, ModelResponse, UsageMetadata
from agenturn.types import Content, Part


class ScriptedLlm(BaseLlm):
    """Backend replaying one scripted list of responses per call.

    Every request it receives is recorded in ``requests``.
    """

    def __init__(self, *turns: list[ModelResponse] | ModelResponse, model: str = "scripted-model"):
        super().__init__(model)
        self.turns = deque(turn if isinstance(turn, list) else [turn] for turn in turns)
        self.requests: list[ModelRequest] = []
        self.stream_flags: list[bool] = []

    async def generate(self, request: ModelRequest, stream: bool = False) -> AsyncGenerator[ModelResponse, None]:
        self.requests.append(request)
        self.stream_flags.append(stream)
        if not self.turns:
            raise AssertionError("ScriptedLlm was called more times than scripted")
        for response in self.turns.popleft():
            yield response


class TrackingLlm(ScriptedLlm):
    """ScriptedLlm that records, per call, whether its stream ran to the end.

    ``completed`` gets ``False`` when the consumer closed the stream early.
    """

    def __init__(self, *turns: list[ModelResponse] | ModelResponse, model: str = "scripted-model"):
        super().__init__(*turns, model=model)
        self.completed: list[bool] = []

    async def generate(self, request: ModelRequest, stream: bool = False) -> AsyncGenerator[ModelResponse, None]:
        finished = False
        try:
            async with aclosing(super().generate(request, stream)) as agen:
                async for response in agen:
                    yield response
            finished = True
        finally:
            self.completed.append(finished)


def text_response(text: str, **kwargs: Any) -> ModelResponse:
    return ModelResponse(content=Content.from_text(text, role="model"), finish_reason="STOP", **kwargs)


def partial_text(text: str) -> ModelResponse:
    return ModelResponse(content=Content.from_text(text, role="model"), partial=True)


def call_response(name: str, args: dict[str, Any] | None = None, call_id: str | None = None) -> ModelResponse:
    return ModelResponse(
        content=Content(role="model", parts=[Part.from_function_call(name, args or {}, id=call_id)]),
        finish_reason="STOP",
    )


def calls_response(*calls: tuple[str, dict[str, Any]]) -> ModelResponse:
    return ModelResponse(
        content=Content(role="model", parts=[Part.from_function_call(name, args) for name, args in calls]),
        finish_reason="STOP",
    )


def usage(total: int) -> UsageMetadata:
    return UsageMetadata(prompt_token_count=total - 1, candidates_token_count=1, total_token_count=total)


def make_context(agent: BaseAgent, run_config: RunConfig | None = None, **kwargs: Any) -> InvocationContext:
    return InvocationContext(
        agent=agent,
        registry=AgentRegistry.from_root(agent.root_agent),
        run_config=run_config,
        **kwargs,
    )


async def collect(agen) -> list:
    return [item async for item in agen]
