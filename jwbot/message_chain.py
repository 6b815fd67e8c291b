"""Ordered chains of chat message segments in the mirai JSON format."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

MESSAGE_TYPES = frozenset(
    {
        "Plain",
        "Image",
        "FlashImage",
        "At",
        "AtAll",
        "App",
        "Json",
        "Xml",
        "Face",
        "Poke",
        "Quote",
    }
)


class MessageChain:
    """A list of message segments, each a JSON object with a ``type`` key.

    ``message_id`` and ``timestamp`` come from the ``Source`` segment of a
    received chain and are 0 for chains built locally.
    """

    def __init__(self, messages: Iterable[dict[str, Any]] | None = None) -> None:
        self._messages: list[dict[str, Any]] = []
        self.message_id = 0
        self.timestamp = 0
        for message in messages or ():
            self.append(message)

    def plain(self, value: object) -> MessageChain:
        """Append a plain text segment holding ``str(value)``."""
        self._messages.append({"type": "Plain", "text": str(value)})
        return self

    def append(self, message: dict[str, Any]) -> MessageChain:
        """Append a segment given as a JSON object."""
        if not isinstance(message, dict) or "type" not in message:
            raise ValueError("a message segment needs a 'type' key")
        self._messages.append(dict(message))
        return self

    def _copy(self) -> MessageChain:
        chain = MessageChain(self._messages)
        chain.message_id = self.message_id
        chain.timestamp = self.timestamp
        return chain

    def __add__(self, other: object) -> MessageChain:
        if not isinstance(other, (str, MessageChain)):
            return NotImplemented
        result = self._copy()
        result += other
        return result

    def __radd__(self, other: object) -> MessageChain:
        if not isinstance(other, str):
            return NotImplemented
        result = MessageChain().plain(other)
        result._messages.extend(dict(m) for m in self._messages)
        return result

    def __iadd__(self, other: object) -> MessageChain:
        if isinstance(other, str):
            return self.plain(other)
        if isinstance(other, MessageChain):
            self._messages.extend(dict(m) for m in other._messages)
            return self
        return NotImplemented

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MessageChain):
            return NotImplemented
        return self._messages == other._messages

    __hash__ = None  # type: ignore[assignment]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self._messages)

    def __getitem__(self, index: int) -> dict[str, Any]:
        return self._messages[index]

    def __delitem__(self, index: int) -> None:
        """Remove the segment at ``index``."""
        self._messages.pop(index)

    def __repr__(self) -> str:
        return f"MessageChain({self._messages!r})"

    def get_plain_text(self) -> str:
        """Return the text of all plain segments joined together."""
        return "".join(str(m.get("text", "")) for m in self._messages if m["type"] == "Plain")

    def get_plain_text_first(self) -> str:
        """Return the text of the first plain segment, or an empty string."""
        for message in self._messages:
            if message["type"] == "Plain":
                return str(message.get("text", ""))
        return ""

    def get_all(self, type_name: str) -> list[dict[str, Any]]:
        """Return every segment of the given type, in order."""
        return [m for m in self._messages if m["type"] == type_name]

    @classmethod
    def from_json(cls, data: list[Any] | None) -> MessageChain:
        """Build a chain from a received message chain.

        The first element is the ``Source`` segment and is never kept as a
        message; segments of unknown types are dropped.
        """
        chain = cls()
        if not data:
            return chain
        first = data[0]
        if isinstance(first, dict) and first.get("type") == "Source":
            try:
                chain.message_id = int(first["id"])
                chain.timestamp = int(first["time"])
            except (KeyError, TypeError, ValueError):
                chain.message_id = 0
                chain.timestamp = 0
        for item in data[1:]:
            if isinstance(item, dict) and item.get("type") in MESSAGE_TYPES:
                chain._messages.append(dict(item))
        return chain

    def to_json(self) -> list[dict[str, Any]]:
        """Return the segments as a JSON-ready list."""
        return [dict(m) for m in self._messages]