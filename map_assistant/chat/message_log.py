"""Rendered conversation history."""

from dataclasses import dataclass

from map_assistant.platform.clients.relay.models import Message

ROLE_LABELS = {"user": "You", "assistant": "AI"}


@dataclass(frozen=True)
class LogEntry:
    message_id: str | None
    role: str
    text: str

    @property
    def label(self) -> str:
        return ROLE_LABELS.get(self.role, self.role)


class MessageLogView:
    """Projection of the latest message snapshot, oldest first.

    Each render replaces the whole log. Messages are ordered by
    ``created_at`` when every message has one; otherwise the snapshot is
    assumed newest-first (the Assistants API default) and reversed.
    """

    def __init__(self) -> None:
        self._entries: tuple[LogEntry, ...] = ()

    @property
    def entries(self) -> tuple[LogEntry, ...]:
        return self._entries

    def render(self, messages: list[Message]) -> tuple[LogEntry, ...]:
        ordered = order_oldest_first(messages)
        entries = []
        for message in ordered:
            texts = message.text_parts()
            if not texts:
                continue
            entries.append(LogEntry(message_id=message.id, role=message.role, text="\n".join(texts)))
        self._entries = tuple(entries)
        return self._entries

    def clear(self) -> None:
        self._entries = ()


def order_oldest_first(messages: list[Message]) -> list[Message]:
    reversed_messages = list(reversed(messages))
    if messages and all(message.created_at is not None for message in messages):
        # stable sort keeps newest-first transport order reversed for equal timestamps
        return sorted(reversed_messages, key=lambda message: message.created_at or 0)
    return reversed_messages
