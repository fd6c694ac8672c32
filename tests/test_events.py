"""Tests for the event and content models (agenturn.events, agenturn.types)."""

import pytest
from pydantic import ValidationError

from agenturn.events import Event, EventActions, EventLog
from agenturn.llm import ModelResponse
from agenturn.types import Content, FunctionCall, Part


# ---------------------------------------------------------------------------
# Part / Content
# ---------------------------------------------------------------------------


class TestPart:
    def test_exactly_one_field(self):
        with pytest.raises(ValidationError):
            Part()
        with pytest.raises(ValidationError):
            Part(text="a", function_call=FunctionCall(name="f"))

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError):
            Part(text="a", inline_data=b"x")

    def test_content_text_joins_text_parts(self):
        content = Content(role="model", parts=[
            Part.from_text("Hello"),
            Part.from_function_call("lookup", {"q": "x"}),
            Part.from_text(" world"),
        ])
        assert content.text == "Hello world"


# ---------------------------------------------------------------------------
# ModelResponse
# ---------------------------------------------------------------------------


class TestModelResponse:
    def test_function_calls_and_responses(self):
        response = ModelResponse(content=Content(role="model", parts=[
            Part.from_function_call("a", {"x": 1}, id="1"),
            Part.from_function_response("b", {"y": 2}, id="2"),
        ]))
        assert [c.name for c in response.get_function_calls()] == ["a"]
        assert [r.name for r in response.get_function_responses()] == ["b"]
        assert ModelResponse().get_function_calls() == []

    def test_from_error(self):
        response = ModelResponse.from_error(ValueError("bad request"), error_code="400", model="gpt")
        assert response.error_code == "400"
        assert "gpt" in response.error_message
        assert "bad request" in response.content.text
        assert not response.partial


# ---------------------------------------------------------------------------
# Event
# ---------------------------------------------------------------------------


class TestEvent:
    def test_ids_are_unique(self):
        assert Event(author="a").id != Event(author="a").id
        assert Event.new_id() != Event.new_id()

    def test_plain_text_is_final(self):
        assert Event(author="a", content=Content.from_text("done", role="model")).is_final_response()

    def test_partial_is_not_final(self):
        event = Event(author="a", content=Content.from_text("do", role="model"), partial=True)
        assert not event.is_final_response()

    def test_function_call_is_not_final(self):
        event = Event(author="a", content=Content(role="model", parts=[Part.from_function_call("f")]))
        assert not event.is_final_response()

    def test_function_response_is_not_final(self):
        event = Event(author="a", content=Content(role="user", parts=[Part.from_function_response("f", {})]))
        assert not event.is_final_response()

    def test_long_running_call_is_final(self):
        event = Event(
            author="a",
            content=Content(role="model", parts=[Part.from_function_call("f", id="af-1")]),
            long_running_tool_ids={"af-1"},
        )
        assert event.is_final_response()

    def test_skip_summarization_is_final(self):
        event = Event(
            author="a",
            content=Content(role="user", parts=[Part.from_function_response("f", {})]),
            actions=EventActions(skip_summarization=True),
        )
        assert event.is_final_response()


class TestEventActions:
    def test_merge(self):
        actions = EventActions(state_delta={"a": 1})
        actions.merge(EventActions(transfer_to_agent="b", state_delta={"c": 2}))
        actions.merge(EventActions(escalate=True, requested_auth_configs={"id": {"type": "oauth"}}))

        assert actions.transfer_to_agent == "b"
        assert actions.escalate is True
        assert actions.state_delta == {"a": 1, "c": 2}
        assert actions.requested_auth_configs == {"id": {"type": "oauth"}}

    def test_merge_keeps_existing_transfer_when_other_has_none(self):
        actions = EventActions(transfer_to_agent="x")
        actions.merge(EventActions())
        assert actions.transfer_to_agent == "x"


class TestEventLog:
    def test_append_and_iterate(self):
        log = EventLog()
        first, second = Event(author="user"), Event(author="a")
        log.append(first)
        log.append(second)

        assert len(log) == 2
        assert [e.id for e in log] == [first.id, second.id]

    def test_events_is_a_copy(self):
        log = EventLog([Event(author="user")])
        log.events.append(Event(author="a"))
        assert len(log) == 1
