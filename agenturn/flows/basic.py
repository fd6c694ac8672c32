from typing import AsyncGenerator

from pydantic import TypeAdapter

from agenturn.context import InvocationContext
from agenturn.events import Event
from agenturn.flows.processor import BaseRequestProcessor
from agenturn.llm import ModelRequest


class BasicRequestProcessor(BaseRequestProcessor):
    """Copies model name, generation config and output schema onto the request."""

    async def run(self, invocation_context: InvocationContext, request: ModelRequest) -> AsyncGenerator[Event, None]:
        agent = invocation_context.agent
        model = getattr(agent, "canonical_model", None)
        if model is not None:
            request.model = model.model
        generate_config = getattr(agent, "generate_config", None)
        if generate_config is not None:
            request.config = generate_config.model_copy(deep=True)
        output_schema = getattr(agent, "output_schema", None)
        if output_schema is not None:
            request.set_output_schema(TypeAdapter(output_schema).json_schema())
        return
        yield
