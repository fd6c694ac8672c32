import json
from typing import AsyncGenerator

from agenturn.context import InvocationContext
from agenturn.events import Event
from agenturn.flows.processor import BaseRequestProcessor
from agenturn.llm import ModelRequest
from agenturn.tool import REQUEST_CREDENTIAL_FUNCTION_CALL_NAME, remove_client_function_call_id
from agenturn.types import Content, Part


class ContentsRequestProcessor(BaseRequestProcessor):
    """Builds the conversation sent to the model from the invocation's event log."""

    async def run(self, invocation_context: InvocationContext, request: ModelRequest) -> AsyncGenerator[Event, None]:
        agent = invocation_context.agent
        events = invocation_context.event_log.events
        if getattr(agent, "include_contents", "default") == "none":
            events = _current_turn(events)
        request.contents = build_contents(events, agent.name, invocation_context.branch)
        if not request.contents and invocation_context.user_content is not None:
            request.contents = [invocation_context.user_content]
        return
        yield


def _current_turn(events: list[Event]) -> list[Event]:
    for index in range(len(events) - 1, -1, -1):
        if events[index].author == "user":
            return events[index:]
    return []


def _is_event_belongs_to_branch(branch: str | None, event: Event) -> bool:
    """Events of the current branch and of its ancestors are visible; sibling branches are not."""
    if not branch or not event.branch:
        return True
    return branch == event.branch or branch.startswith(f"{event.branch}.")


def _is_auth_event(event: Event) -> bool:
    calls = event.get_function_calls()
    if calls and all(call.name == REQUEST_CREDENTIAL_FUNCTION_CALL_NAME for call in calls):
        return True
    responses = event.get_function_responses()
    return bool(responses) and all(r.name == REQUEST_CREDENTIAL_FUNCTION_CALL_NAME for r in responses)


def _is_other_agent_reply(agent_name: str, event: Event) -> bool:
    return bool(agent_name) and event.author != agent_name and event.author != "user"


def _convert_foreign_event(event: Event) -> Content:
    """Rephrase another agent's turn as user-side context."""
    parts = [Part.from_text("For context:")]
    for part in event.content.parts:
        if part.text:
            parts.append(Part.from_text(f"[{event.author}] said: {part.text}"))
        elif part.function_call:
            args = json.dumps(part.function_call.args, ensure_ascii=False, default=str)
            parts.append(Part.from_text(
                f"[{event.author}] called tool `{part.function_call.name}` with parameters: {args}"))
        elif part.function_response:
            result = json.dumps(part.function_response.response, ensure_ascii=False, default=str)
            parts.append(Part.from_text(
                f"[{event.author}] `{part.function_response.name}` tool returned result: {result}"))
    return Content(role="user", parts=parts)


def build_contents(events: list[Event], agent_name: str, branch: str | None) -> list[Content]:
    contents = []
    for event in events:
        if not event.content or not event.content.parts:
            continue
        if event.partial:
            continue
        if not _is_event_belongs_to_branch(branch, event):
            continue
        if _is_auth_event(event):
            continue
        if _is_other_agent_reply(agent_name, event):
            contents.append(_convert_foreign_event(event))
        else:
            contents.append(remove_client_function_call_id(event.content))
    return contents
