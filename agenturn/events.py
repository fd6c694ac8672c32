"""Events: the only thing the turn loop emits."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field
from typing_extensions import Annotated

from agenturn.llm.response import ModelResponse


class EventActions(BaseModel):
    """Side-channel directives attached to an event"""
    transfer_to_agent: Annotated[str | None, Field(default=None, description="Agent to hand control to")]
    escalate: Annotated[bool | None, Field(default=None)]
    skip_summarization: Annotated[bool | None, Field(default=None)]
    state_delta: Annotated[dict[str, Any], Field(default_factory=dict)]
    # function call id -> auth config requested by the tool
    requested_auth_configs: Annotated[dict[str, Any], Field(default_factory=dict)]

    def merge(self, other: "EventActions") -> None:
        """Fold another actions object into this one; later transfers win."""
        if other.transfer_to_agent:
            self.transfer_to_agent = other.transfer_to_agent
        if other.escalate:
            self.escalate = True
        if other.skip_summarization:
            self.skip_summarization = True
        self.state_delta.update(other.state_delta)
        self.requested_auth_configs.update(other.requested_auth_configs)


class Event(ModelResponse):
    """A record appended to the invocation's event log.

    ``author``, ``invocation_id`` and ``branch`` are fixed at creation. Events
    are not mutated once yielded; the loop creates a fresh copy instead.
    """
    id: Annotated[str, Field(default_factory=lambda: Event.new_id())]
    invocation_id: Annotated[str, Field(default="")]
    author: Annotated[str, Field(description="'user' or the name of the agent that produced the event")]
    branch: Annotated[str | None, Field(default=None, description="Delegation path, e.g. root.sub_a")]
    actions: Annotated[EventActions, Field(default_factory=EventActions)]
    long_running_tool_ids: Annotated[set[str], Field(default_factory=set)]
    timestamp: Annotated[float, Field(default_factory=lambda: datetime.now().timestamp())]

    @staticmethod
    def new_id() -> str:
        return uuid.uuid4().hex[:8]

    def is_final_response(self) -> bool:
        """Whether this event ends an agent's turn."""
        if self.actions.skip_summarization or self.long_running_tool_ids:
            return True
        return (
            not self.get_function_calls()
            and not self.get_function_responses()
            and not self.partial
        )


class EventLog:
    """Append-only, in-memory log of the events of one invocation.

    The loop reads it to rebuild the conversation; only the caller appends.
    """

    def __init__(self, events: list[Event] | None = None):
        self._events: list[Event] = list(events or [])

    def append(self, event: Event) -> None:
        self._events.append(event)

    @property
    def events(self) -> list[Event]:
        return list(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(list(self._events))
