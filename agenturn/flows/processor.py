"""Request and response processors.

Processors are the pluggable steps of a flow. A request processor shapes the
outgoing ModelRequest and may emit events ahead of the model call; setting
``end_invocation`` on the context skips the model call for the cycle. A
response processor inspects (or rewrites) a ModelResponse before it is
finalized into an event.
"""

from abc import ABC, abstractmethod
from typing import AsyncGenerator

from agenturn.context import InvocationContext
from agenturn.events import Event
from agenturn.llm import ModelRequest, ModelResponse


class BaseRequestProcessor(ABC):
    """Base class for all request processors"""

    @abstractmethod
    def run(self, invocation_context: InvocationContext, request: ModelRequest) -> AsyncGenerator[Event, None]:
        """Mutate ``request`` in place, yielding any events to emit before the model call."""
        pass


class BaseResponseProcessor(ABC):
    """Base class for all response processors"""

    @abstractmethod
    def run(self, invocation_context: InvocationContext, response: ModelResponse) -> AsyncGenerator[Event, None]:
        """Inspect ``response`` in place, yielding any events to emit before it is finalized."""
        pass
