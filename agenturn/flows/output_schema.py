import json
import logging
import re
from typing import AsyncGenerator

from pydantic import TypeAdapter, ValidationError

from agenturn.context import InvocationContext
from agenturn.events import Event
from agenturn.flows.processor import BaseResponseProcessor
from agenturn.llm import ModelResponse
from agenturn.types import Content

logger = logging.getLogger(__name__)

OUTPUT_SCHEMA_VALIDATION_FAILED = "OUTPUT_SCHEMA_VALIDATION_FAILED"

_CODE_FENCE = re.compile(r"^\s*```(?:json)?\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    match = _CODE_FENCE.match(text)
    return match.group(1) if match else text


class OutputSchemaResponseProcessor(BaseResponseProcessor):
    """Validates the final text answer against the agent's output schema.

    On success the text is replaced by the normalized JSON. On failure the
    response is turned into an error response and an error event is emitted;
    the run itself continues.
    """

    async def run(self, invocation_context: InvocationContext, response: ModelResponse) -> AsyncGenerator[Event, None]:
        agent = invocation_context.agent
        output_schema = getattr(agent, "output_schema", None)
        if output_schema is None or response.partial or not response.content:
            return
        if response.get_function_calls() or response.error_code:
            return
        text = response.content.text
        if not text:
            return

        adapter = TypeAdapter(output_schema)
        try:
            value = adapter.validate_json(strip_code_fence(text))
        except ValidationError as e:
            logger.warning(f"Output of agent {agent.name} does not match {output_schema.__name__}: {e}")
            response.error_code = OUTPUT_SCHEMA_VALIDATION_FAILED
            response.error_message = str(e)
            yield Event(
                invocation_id=invocation_context.invocation_id,
                author=agent.name,
                branch=invocation_context.branch,
                error_code=OUTPUT_SCHEMA_VALIDATION_FAILED,
                error_message=str(e),
                content=Content.from_text(f"Error: output does not match {output_schema.__name__}", role="model"),
            )
            return

        normalized = json.dumps(adapter.dump_python(value, mode="json"), ensure_ascii=False)
        response.content = Content.from_text(normalized, role="model")
