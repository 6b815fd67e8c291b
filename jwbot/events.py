"""Events received from mirai-api-http and the actions they offer."""

from __future__ import annotations

from enum import Enum
from typing import Any

from jwbot.api import MiraiApi
from jwbot.message_chain import MessageChain


def _as_chain(chain: MessageChain | str) -> MessageChain:
    return MessageChain().plain(chain) if isinstance(chain, str) else chain


class MessageType(Enum):
    """Kinds of chat message a bot can receive."""

    FRIEND = "FriendMessage"
    GROUP = "GroupMessage"
    TEMP = "TempMessage"


class Event:
    """A received event; ``data`` keeps the raw JSON object."""

    def __init__(self, bot: MiraiApi, data: dict[str, Any]) -> None:
        self.bot = bot
        self.data = dict(data)
        self.type = str(data.get("type", ""))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.data!r})"


class _ChatMessage(Event):
    def __init__(self, bot: MiraiApi, data: dict[str, Any]) -> None:
        super().__init__(bot, data)
        self.message_chain = MessageChain.from_json(data.get("messageChain"))
        self.sender: dict[str, Any] = dict(data.get("sender") or {})
        self.sender_id = int(self.sender.get("id", 0))

    @property
    def message_id(self) -> int:
        return self.message_chain.message_id


class _MemberMessage(_ChatMessage):
    def __init__(self, bot: MiraiApi, data: dict[str, Any]) -> None:
        super().__init__(bot, data)
        self.group_id = int((self.sender.get("group") or {}).get("id", 0))


class FriendMessage(_ChatMessage):
    """A message from a friend."""

    def reply(self, chain: MessageChain | str) -> int:
        return self.bot.send_friend_message(self.sender_id, _as_chain(chain))

    def quote_reply(self, chain: MessageChain | str) -> int:
        return self.bot.send_friend_message(self.sender_id, _as_chain(chain), self.message_id)


class GroupMessage(_MemberMessage):
    """A message posted in a group."""

    def reply(self, chain: MessageChain | str) -> int:
        return self.bot.send_group_message(self.group_id, _as_chain(chain))

    def quote_reply(self, chain: MessageChain | str) -> int:
        return self.bot.send_group_message(self.group_id, _as_chain(chain), self.message_id)

    def recall(self) -> bool:
        return self.bot.recall(self.message_id)

    def at_me(self) -> bool:
        """Whether the message mentions the bot's account."""
        return any(m.get("target") == self.bot.qq for m in self.message_chain.get_all("At"))


class TempMessage(_MemberMessage):
    """A temporary message from a group member."""

    def reply(self, chain: MessageChain | str) -> int:
        return self.bot.send_temp_message(self.group_id, self.sender_id, _as_chain(chain))

    def quote_reply(self, chain: MessageChain | str) -> int:
        return self.bot.send_temp_message(
            self.group_id, self.sender_id, _as_chain(chain), self.message_id
        )


_MESSAGE_CLASSES: dict[MessageType, type[_ChatMessage]] = {
    MessageType.FRIEND: FriendMessage,
    MessageType.GROUP: GroupMessage,
    MessageType.TEMP: TempMessage,
}


class Message(Event):
    """Any kind of chat message; replies go where the message came from."""

    def __init__(self, bot: MiraiApi, data: dict[str, Any]) -> None:
        super().__init__(bot, data)
        try:
            self.message_type: MessageType | None = MessageType(self.type)
        except ValueError:
            self.message_type = None
        self.inner: _ChatMessage | None = (
            _MESSAGE_CLASSES[self.message_type](bot, data) if self.message_type else None
        )
        self.message_chain = MessageChain.from_json(data.get("messageChain"))
        self.sender_id = int((data.get("sender") or {}).get("id", 0))

    def _target(self) -> Any:
        if self.inner is None:
            raise ValueError("错误的 MessageType .")
        return self.inner

    def reply(self, chain: MessageChain | str) -> int:
        return self._target().reply(chain)

    def quote_reply(self, chain: MessageChain | str) -> int:
        return self._target().quote_reply(chain)


class RequestEvent(Event):
    """A request waiting for the bot to accept or reject it."""

    kind = ""

    def __init__(self, bot: MiraiApi, data: dict[str, Any]) -> None:
        super().__init__(bot, data)
        self.event_id = int(data.get("eventId", 0))
        self.from_id = int(data.get("fromId", 0))
        self.group_id = int(data.get("groupId", 0))
        self.nick = str(data.get("nick", ""))
        self.group_name = str(data.get("groupName", ""))
        self.message = str(data.get("message", ""))

    def respond(self, operate: int, message: str = "") -> bool:
        """Send the answer code ``operate`` with an optional message."""
        return self.bot.respond_request(
            self.kind, self.event_id, self.from_id, self.group_id, operate, message
        )


class NewFriendRequestEvent(RequestEvent):
    kind = "newFriendRequestEvent"


class MemberJoinRequestEvent(RequestEvent):
    kind = "memberJoinRequestEvent"


class BotInvitedJoinGroupRequestEvent(RequestEvent):
    kind = "botInvitedJoinGroupRequestEvent"


class CommandEvent(Event):
    """A console or chat command delivered to the bot."""

    def __init__(self, bot: MiraiApi, data: dict[str, Any]) -> None:
        super().__init__(bot, data)
        self.type = "Command"
        self.name = str(data.get("name", ""))
        self.sender = int(data.get("friend") or 0)
        self.group_id = int(data.get("group") or 0)
        self.args = [str(arg) for arg in data.get("args") or []]

    def sender_is_manager(self) -> bool:
        """Whether the sender manages the bot; console commands always do."""
        if self.sender == 0:
            return True
        return self.sender in self.bot.get_managers()


EVENT_CLASSES: dict[str, type[Event]] = {
    "FriendMessage": FriendMessage,
    "GroupMessage": GroupMessage,
    "TempMessage": TempMessage,
    "NewFriendRequestEvent": NewFriendRequestEvent,
    "MemberJoinRequestEvent": MemberJoinRequestEvent,
    "BotInvitedJoinGroupRequestEvent": BotInvitedJoinGroupRequestEvent,
}


def build_event(bot: MiraiApi, data: dict[str, Any]) -> Event:
    """Build the event object for a received JSON object; no type means a command."""
    if "type" not in data:
        return CommandEvent(bot, data)
    return EVENT_CLASSES.get(str(data["type"]), Event)(bot, data)