"""Helpers for consuming the event stream of a streamed run as plain text.

Partial events carry text deltas; these helpers turn a run's events into
those deltas, into the full text, or into a text stream paired with the last
event of the run (for usage metadata and tool calls).
"""

import asyncio
from typing import AsyncGenerator, AsyncIterable

from agenturn.events import Event


async def text_stream_from(events: AsyncIterable[Event]) -> AsyncGenerator[str, None]:
    """Yield the text deltas of the partial events, in order."""
    async for event in events:
        if event.partial and event.content:
            for part in event.content.parts:
                if part.text:
                    yield part.text


async def collect_text_from(events: AsyncIterable[Event]) -> str:
    """Concatenate every text delta of the stream."""
    full_text = ""
    async for text in text_stream_from(events):
        full_text += text
    return full_text


def stream_text_with_final_event(
        events: AsyncIterable[Event],
) -> tuple[AsyncGenerator[str, None], 'asyncio.Future[Event | None]']:
    """Split a run into a text-delta stream and a future resolved with its last event.

    The future is resolved once the text stream is exhausted or closed, with
    the last event seen so far; the stream must be consumed or closed first.
    Must be called from a running event loop.
    """
    final_event: asyncio.Future[Event | None] = asyncio.get_running_loop().create_future()

    async def text_stream() -> AsyncGenerator[str, None]:
        last_event = None
        try:
            async for event in events:
                last_event = event
                if event.partial and event.content:
                    for part in event.content.parts:
                        if part.text:
                            yield part.text
        except Exception as e:
            if not final_event.done():
                final_event.set_exception(e)
            raise
        finally:
            # also reached when the consumer stops early and closes the stream
            if not final_event.done():
                final_event.set_result(last_event)

    return text_stream(), final_event
