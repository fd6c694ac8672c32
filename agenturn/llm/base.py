from abc import ABC, abstractmethod
from typing import AsyncGenerator

from .request import ModelRequest
from .response import ModelResponse


class BaseLlm(ABC):
    """Abstract base class for model backends."""

    def __init__(self, model: str):
        self.model = model

    @abstractmethod
    def generate(self, request: ModelRequest, stream: bool = False) -> AsyncGenerator[ModelResponse, None]:
        """Send one request to the model.

        Args:
            request: The populated model request
            stream: Whether to stream the output

        Returns:
            An async generator of responses. When streaming, every chunk is a
            ``partial`` response holding only its delta, and the last
            response is non-partial with the finish metadata. When not
            streaming, exactly one non-partial response is produced.
        """
        pass
