"""Normalization of streamed model output."""

from .response import ModelResponse
from ..types import Content, Part


class StreamingResponseAggregator:
    """Tracks the deltas of one streamed call.

    Partial chunks pass through untouched, so each still holds only its delta.
    When the terminal response arrives without content of its own, it is
    given the accumulated text and function calls, so the non-partial
    response always carries the complete turn.
    """

    def __init__(self):
        self._text = ""
        self._function_call_parts: list[Part] = []

    def process(self, response: ModelResponse) -> ModelResponse:
        if response.partial:
            if response.content:
                for part in response.content.parts:
                    if part.text is not None:
                        self._text += part.text
                    elif part.function_call is not None:
                        self._function_call_parts.append(part)
            return response

        if response.content is None and (self._text or self._function_call_parts):
            response = response.model_copy(update={"content": self._accumulated_content()})
        self._reset()
        return response

    def _accumulated_content(self) -> Content:
        parts: list[Part] = []
        if self._text:
            parts.append(Part.from_text(self._text))
        parts.extend(self._function_call_parts)
        return Content(role="model", parts=parts)

    def _reset(self) -> None:
        self._text = ""
        self._function_call_parts = []
