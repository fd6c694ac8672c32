"""The turn-execution loop.

A flow drives one agent through repeated cycles of: build a request, call
the model, finalize the response into events, run the requested tools, and,
when a tool asks for it, hand control to another agent of the tree. Every
stage is an async generator, so cancelling the consumer stops the chain at
the next ``await``.
"""

import logging
import time
from abc import ABC
from contextlib import aclosing
from typing import TYPE_CHECKING, AsyncGenerator

from agenturn.context import CallbackContext, InvocationContext
from agenturn.events import Event
from agenturn.exceptions import AgentNotFoundError, PartialFinalEventError
from agenturn.flows.processor import BaseRequestProcessor, BaseResponseProcessor
from agenturn.interceptors import InterceptorChain
from agenturn.llm import ModelRequest, ModelResponse, StreamingResponseAggregator
from agenturn.llm.logger import ModelCallRequest, ModelCallResponse, log_model_call
from agenturn.tool import (
    BaseTool,
    DefaultToolDispatcher,
    ToolContext,
    generate_auth_event,
    get_long_running_function_calls,
    populate_client_function_call_id,
)
from agenturn.types import StreamingMode

if TYPE_CHECKING:
    from agenturn.agents.base import BaseAgent

logger = logging.getLogger(__name__)

AGENT_NAME_LABEL = "agenturn_agent_name"


class BaseLlmFlow(ABC):
    """Runs an agent until it produces a final response."""

    def __init__(self):
        self.request_processors: list[BaseRequestProcessor] = []
        self.response_processors: list[BaseResponseProcessor] = []

    async def run(self, invocation_context: InvocationContext) -> AsyncGenerator[Event, None]:
        """Run cycles until the last event of a cycle is final."""
        while True:
            last_event = None
            async with aclosing(self._run_one_step(invocation_context)) as agen:
                async for event in agen:
                    last_event = event
                    yield event
            if last_event and last_event.partial:
                logger.error(f"Agent {invocation_context.agent.name} ended a step on partial event {last_event.id}")
                raise PartialFinalEventError(last_event.id)
            if not last_event or last_event.is_final_response() or invocation_context.end_invocation:
                break

    async def _run_one_step(self, invocation_context: InvocationContext) -> AsyncGenerator[Event, None]:
        """One cycle: preprocess, call the model, postprocess each response."""
        request = ModelRequest()

        async with aclosing(self._preprocess(invocation_context, request)) as agen:
            async for event in agen:
                yield event
        if invocation_context.end_invocation:
            return

        # Draft shared by every response of this call; each yielded event is a finalized copy
        model_response_event = Event(
            id=Event.new_id(),
            invocation_id=invocation_context.invocation_id,
            author=invocation_context.agent.name,
            branch=invocation_context.branch,
        )
        async with aclosing(self._call_llm(invocation_context, request, model_response_event)) as agen:
            async for response in agen:
                async with aclosing(
                        self._postprocess(invocation_context, request, response, model_response_event)) as post:
                    async for event in post:
                        # the next chunk of the same call gets its own id
                        model_response_event.id = Event.new_id()
                        yield event

    async def _preprocess(self, invocation_context: InvocationContext, request: ModelRequest) -> AsyncGenerator[Event, None]:
        agent = invocation_context.agent

        for processor in self.request_processors:
            async with aclosing(processor.run(invocation_context, request)) as agen:
                async for event in agen:
                    yield event
            if invocation_context.end_invocation:
                logger.debug(f"{type(processor).__name__} ended the invocation for agent {agent.name}")
                return

        tool_context = ToolContext(invocation_context)
        for tool in getattr(agent, "canonical_tools", []):
            await tool.process_request(tool_context, request)

        request.append_instructions([self._identity_instruction(agent)])
        request.labels.setdefault(AGENT_NAME_LABEL, agent.name)

    @staticmethod
    def _identity_instruction(agent: 'BaseAgent') -> str:
        instruction = f'You are an agent. Your internal name is "{agent.name}".'
        if agent.description:
            instruction += f' The description about you is "{agent.description}".'
        return instruction

    async def _call_llm(
            self,
            invocation_context: InvocationContext,
            request: ModelRequest,
            model_response_event: Event,
    ) -> AsyncGenerator[ModelResponse, None]:
        agent = invocation_context.agent
        callback_context = CallbackContext(invocation_context, event_actions=model_response_event.actions)

        before_chain = InterceptorChain(getattr(agent, "canonical_before_model_callbacks", []), "before_model")
        response = await before_chain.try_handle(callback_context, request)
        if response is not None:
            logger.info(f"Model call of agent {agent.name} short-circuited by a before_model callback")
            yield response
            return

        llm = agent.canonical_model
        invocation_context.increment_llm_call_count()
        stream = invocation_context.streaming_mode == StreamingMode.SSE
        logger.debug(f"Calling model {llm.model} for agent {agent.name} "
                     f"(call #{invocation_context.llm_call_count}, stream={stream})")

        after_chain = InterceptorChain(getattr(agent, "canonical_after_model_callbacks", []), "after_model")
        aggregator = StreamingResponseAggregator()
        start_time = time.time()
        chunk_count = 0
        async with aclosing(llm.generate(request, stream=stream)) as agen:
            async for response in agen:
                chunk_count += 1
                response = aggregator.process(response)
                altered = await after_chain.try_handle(callback_context, response)
                if altered is not None:
                    response = altered
                if not response.partial:
                    duration_ms = int((time.time() - start_time) * 1000)
                    log_model_call(
                        invocation_context.invocation_id,
                        agent.name,
                        ModelCallRequest.from_request(request, stream),
                        ModelCallResponse.from_response(response, chunk_count),
                        duration_ms,
                    )
                yield response

    async def _postprocess(
            self,
            invocation_context: InvocationContext,
            request: ModelRequest,
            response: ModelResponse,
            model_response_event: Event,
    ) -> AsyncGenerator[Event, None]:
        for processor in self.response_processors:
            async with aclosing(processor.run(invocation_context, response)) as agen:
                async for event in agen:
                    yield event

        if not response.content and not response.error_code and not response.interrupted:
            return

        event = self._finalize_model_response_event(request, response, model_response_event)
        if event.error_code:
            logger.warning(f"Agent {event.author} received an error response: {event.error_code} {event.error_message}")
        yield event

        if event.partial:
            return

        if event.get_function_calls():
            async with aclosing(self._handle_function_calls(invocation_context, event, request.tools_dict)) as agen:
                async for follow_up in agen:
                    yield follow_up
        elif event.actions.transfer_to_agent:
            async with aclosing(self._transfer(invocation_context, event.actions.transfer_to_agent)) as agen:
                async for follow_up in agen:
                    yield follow_up

    @staticmethod
    def _finalize_model_response_event(
            request: ModelRequest,
            response: ModelResponse,
            model_response_event: Event,
    ) -> Event:
        """Fields present on the response override the draft; the draft is left untouched."""
        event = Event.model_validate({
            **model_response_event.model_dump(exclude_none=True),
            **response.model_dump(exclude_none=True),
        })
        if event.get_function_calls():
            populate_client_function_call_id(event)
            event.long_running_tool_ids = get_long_running_function_calls(
                event.get_function_calls(), request.tools_dict)
        return event

    async def _handle_function_calls(
            self,
            invocation_context: InvocationContext,
            function_call_event: Event,
            tools_dict: dict[str, BaseTool],
    ) -> AsyncGenerator[Event, None]:
        agent = invocation_context.agent
        names = [call.name for call in function_call_event.get_function_calls()]
        logger.info(f"Agent {agent.name} executing function calls: {', '.join(names)}")

        dispatcher = getattr(agent, "tool_dispatcher", None) or DefaultToolDispatcher()
        function_response_event = await dispatcher.resolve(invocation_context, function_call_event, tools_dict)
        if function_response_event is None:
            return

        auth_event = generate_auth_event(invocation_context, function_response_event)
        if auth_event:
            yield auth_event
        yield function_response_event

        transfer_to_agent = function_response_event.actions.transfer_to_agent
        if transfer_to_agent:
            async with aclosing(self._transfer(invocation_context, transfer_to_agent)) as agen:
                async for event in agen:
                    yield event

    async def _transfer(self, invocation_context: InvocationContext, agent_name: str) -> AsyncGenerator[Event, None]:
        """Run the target agent to completion on a child context, splicing in its events."""
        agent_to_run = self._get_agent_to_run(invocation_context, agent_name)
        logger.info(f"Transferring from agent {invocation_context.agent.name} to agent {agent_name}")
        child_context = invocation_context.create_child_context(agent_to_run)
        async with aclosing(agent_to_run.run(child_context)) as agen:
            async for event in agen:
                yield event

    @staticmethod
    def _get_agent_to_run(invocation_context: InvocationContext, agent_name: str) -> 'BaseAgent':
        agent_to_run = invocation_context.registry.get(agent_name)
        if agent_to_run is None:
            available = invocation_context.registry.names()
            logger.error(f"Agent {agent_name} not found, available agents: {', '.join(available)}")
            raise AgentNotFoundError(agent_name, available)
        return agent_to_run
