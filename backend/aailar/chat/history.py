"""Bounded, insertion-ordered message history."""
from collections import deque
from typing import Deque, List, Optional

from .schemas import ChatMessage

# Retention cap for the in-memory history
DEFAULT_HISTORY_LIMIT = 500


class MessageHistory:
    """FIFO ring of chat messages.

    Appending past the limit evicts from the front, so the oldest message is
    dropped exactly when a new one arrives at capacity.
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self._messages: Deque[ChatMessage] = deque(maxlen=limit)

    @property
    def limit(self) -> int:
        return self._messages.maxlen

    def __len__(self) -> int:
        return len(self._messages)

    def append(self, message: ChatMessage) -> Optional[ChatMessage]:
        """Append a message; return the evicted one, if any."""
        evicted = None
        if len(self._messages) == self._messages.maxlen:
            evicted = self._messages[0]
        self._messages.append(message)
        return evicted

    def tail(self, count: int) -> List[ChatMessage]:
        """The ``count`` most recent messages, oldest first."""
        if count <= 0:
            return []
        messages = list(self._messages)
        return messages[-count:]

    def find(self, message_id: str) -> Optional[ChatMessage]:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    def remove(self, message_id: str) -> Optional[ChatMessage]:
        """Remove a message by id, keeping the order of the rest."""
        message = self.find(message_id)
        if message is not None:
            self._messages.remove(message)
        return message

    def clear(self) -> None:
        self._messages.clear()

    def snapshot(self) -> List[ChatMessage]:
        return list(self._messages)
