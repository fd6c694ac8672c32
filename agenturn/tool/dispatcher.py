"""Tool resolution: turns the function calls of one event into one response event.

The loop only decides *that* tools must run; this module runs them. Calls
from a single model response run concurrently, and their responses are
returned in call order inside a single aggregated event, so the loop sees
tool execution as atomic per cycle.
"""

import asyncio
import logging
import uuid
from typing import Any, Protocol

from pydantic import BaseModel

from agenturn.context import InvocationContext
from agenturn.events import Event, EventActions
from agenturn.interceptors import InterceptorChain
from agenturn.tool.base import BaseTool
from agenturn.tool.context import ToolContext
from agenturn.types import Content, FunctionCall, Part

logger = logging.getLogger(__name__)

CLIENT_FUNCTION_CALL_ID_PREFIX = "af-"
REQUEST_CREDENTIAL_FUNCTION_CALL_NAME = "request_credential"


def generate_client_function_call_id() -> str:
    return f"{CLIENT_FUNCTION_CALL_ID_PREFIX}{uuid.uuid4()}"


def populate_client_function_call_id(event: Event) -> None:
    """Give every function call of a not-yet-yielded event a stable id."""
    for function_call in event.get_function_calls():
        if not function_call.id:
            function_call.id = generate_client_function_call_id()


def remove_client_function_call_id(content: Content) -> Content:
    """Strip ids the model never produced before sending content back to it."""
    parts = []
    for part in content.parts:
        if part.function_call and (part.function_call.id or "").startswith(CLIENT_FUNCTION_CALL_ID_PREFIX):
            part = part.model_copy(update={"function_call": part.function_call.model_copy(update={"id": None})})
        elif part.function_response and (part.function_response.id or "").startswith(CLIENT_FUNCTION_CALL_ID_PREFIX):
            part = part.model_copy(
                update={"function_response": part.function_response.model_copy(update={"id": None})})
        parts.append(part)
    return content.model_copy(update={"parts": parts})


def get_long_running_function_calls(function_calls: list[FunctionCall], tools_dict: dict[str, BaseTool]) -> set[str]:
    return {
        call.id for call in function_calls
        if call.id and call.name in tools_dict and tools_dict[call.name].is_long_running
    }


def generate_auth_event(invocation_context: InvocationContext, function_response_event: Event) -> Event | None:
    """Build the event asking the user to authorize tools, if any tool asked for it."""
    requested = function_response_event.actions.requested_auth_configs
    if not requested:
        return None
    parts = []
    long_running_ids = set()
    for function_call_id, auth_config in requested.items():
        call_id = generate_client_function_call_id()
        long_running_ids.add(call_id)
        if isinstance(auth_config, BaseModel):
            auth_config = auth_config.model_dump(exclude_none=True)
        parts.append(Part.from_function_call(
            REQUEST_CREDENTIAL_FUNCTION_CALL_NAME,
            args={"function_call_id": function_call_id, "auth_config": auth_config},
            id=call_id,
        ))
    return Event(
        invocation_id=invocation_context.invocation_id,
        author=invocation_context.agent.name,
        branch=invocation_context.branch,
        content=Content(role="model", parts=parts),
        long_running_tool_ids=long_running_ids,
    )


def _normalize_result(result: Any) -> dict[str, Any]:
    if result is None:
        return {}
    if isinstance(result, BaseModel):
        return result.model_dump()
    if isinstance(result, dict):
        return result
    return {"result": result}


class ToolDispatcher(Protocol):
    async def resolve(
            self,
            invocation_context: InvocationContext,
            function_call_event: Event,
            tools_dict: dict[str, BaseTool],
    ) -> Event | None:
        """Run the calls of ``function_call_event`` and return the aggregated response event."""
        ...


class DefaultToolDispatcher:
    """Runs calls concurrently with before/after tool interceptors.

    Unknown tools and tool exceptions become error responses so the model can
    react to them; they do not abort the invocation.
    """

    async def resolve(
            self,
            invocation_context: InvocationContext,
            function_call_event: Event,
            tools_dict: dict[str, BaseTool],
    ) -> Event | None:
        function_calls = function_call_event.get_function_calls()
        if not function_calls:
            return None

        agent = invocation_context.agent
        before_chain = InterceptorChain(getattr(agent, "canonical_before_tool_callbacks", []), "before_tool")
        after_chain = InterceptorChain(getattr(agent, "canonical_after_tool_callbacks", []), "after_tool")

        results = await asyncio.gather(*[
            self._call_one(invocation_context, call, tools_dict, before_chain, after_chain)
            for call in function_calls
        ])

        merged_actions = EventActions()
        parts = []
        for part, actions in results:
            parts.append(part)
            merged_actions.merge(actions)

        return Event(
            invocation_id=invocation_context.invocation_id,
            author=agent.name,
            branch=invocation_context.branch,
            content=Content(role="user", parts=parts),
            actions=merged_actions,
        )

    async def _call_one(
            self,
            invocation_context: InvocationContext,
            function_call: FunctionCall,
            tools_dict: dict[str, BaseTool],
            before_chain: InterceptorChain[dict],
            after_chain: InterceptorChain[dict],
    ) -> tuple[Part, EventActions]:
        tool_context = ToolContext(invocation_context, function_call_id=function_call.id)
        tool = tools_dict.get(function_call.name)
        if tool is None:
            logger.warning(f"Function {function_call.name} is not found in the tools_dict")
            response = {"error": f"Function {function_call.name} is not found in the tools_dict."}
            return self._response_part(function_call, response), tool_context.actions

        args = dict(function_call.args)
        result = await before_chain.try_handle(tool, args, tool_context)
        if result is None:
            try:
                result = _normalize_result(await tool.run(args, tool_context))
            except Exception as e:
                logger.exception(f"Error executing tool {function_call.name}")
                result = {"error": str(e)}
        altered = await after_chain.try_handle(tool, args, tool_context, result)
        if altered is not None:
            result = altered
        return self._response_part(function_call, _normalize_result(result)), tool_context.actions

    @staticmethod
    def _response_part(function_call: FunctionCall, response: dict[str, Any]) -> Part:
        return Part.from_function_response(function_call.name, response, id=function_call.id)
