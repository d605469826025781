"""
Outbound message channel of a relay WebSocket.

Adapters and session listeners push messages from synchronous callbacks
as well as coroutines; a single writer drains them in order.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger("clinicscribe.relay")

Message = Dict[str, Any]
Send = Callable[[Message], Awaitable[None]]


class RelayChannel:
    """FIFO of messages bound for one connected client."""

    def __init__(self) -> None:
        self._queue: "asyncio.Queue[Optional[Message]]" = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, message: Message) -> None:
        if self._closed:
            logger.debug(f"Dropped {message.get('type')} message on closed channel")
            return
        self._queue.put_nowait(message)

    async def send(self, message: Message) -> None:
        self.push(message)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)

    async def pump(self, write: Send) -> None:
        """Write queued messages with ``write`` until the channel is closed."""
        while True:
            message = await self._queue.get()
            if message is None:
                return
            await write(message)
