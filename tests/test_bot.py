import json
from urllib.parse import parse_qs, urlparse

import pytest
import responses

from jwbot.api import MiraiError
from jwbot.bot import MiraiBot
from jwbot.events import CommandEvent, Event, GroupMessage, Message

BASE = "http://localhost:8080"

GROUP_DATA = {
    "type": "GroupMessage",
    "messageChain": [{"type": "Source", "id": 5, "time": 1}, {"type": "Plain", "text": "hi"}],
    "sender": {"id": 111, "group": {"id": 222}},
}
FRIEND_DATA = {
    "type": "FriendMessage",
    "messageChain": [{"type": "Source", "id": 6, "time": 1}, {"type": "Plain", "text": "yo"}],
    "sender": {"id": 333},
}


@pytest.fixture
def http():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def _wait(futures):
    for future in futures:
        future.result(timeout=5)


def test_handle_event_dispatches_group_message(http):
    bot = MiraiBot()
    received = []
    bot.on(GroupMessage, received.append)
    futures = bot.handle_event(GROUP_DATA)
    _wait(futures)
    bot.close()
    assert len(received) == 1
    assert received[0].group_id == 222
    assert received[0].message_chain.get_plain_text() == "hi"


def test_message_handler_receives_all_chat_kinds(http):
    bot = MiraiBot()
    received = []
    bot.on(Message, received.append)
    _wait(bot.handle_event(GROUP_DATA))
    _wait(bot.handle_event(FRIEND_DATA))
    bot.close()
    assert [event.sender_id for event in received] == [111, 333]
    assert all(isinstance(event, Message) for event in received)


def test_unmatched_event_has_no_handlers(http):
    bot = MiraiBot()
    bot.on(GroupMessage, lambda event: None)
    futures = bot.handle_event(FRIEND_DATA)
    bot.close()
    assert futures == []


def test_event_without_type_is_a_command(http):
    bot = MiraiBot()
    received = []
    bot.on(CommandEvent, received.append)
    _wait(bot.handle_event({"name": "hello", "friend": 0, "group": 0, "args": ["a", "b"]}))
    bot.close()
    assert received[0].name == "hello"
    assert received[0].args == ["a", "b"]


def test_string_event_type_builds_generic_event(http):
    bot = MiraiBot()
    received = []
    bot.on("BotMuteEvent", received.append)
    _wait(bot.handle_event({"type": "BotMuteEvent", "durationSeconds": 60}))
    bot.close()
    assert received[0].type == "BotMuteEvent"
    assert received[0].data["durationSeconds"] == 60


def test_on_rejects_ambiguous_class():
    bot = MiraiBot()
    with pytest.raises(ValueError):
        bot.on(Event, lambda event: None)
    bot._pool.shutdown()


def test_fetch_events_http_dispatches_data(http):
    http.add(responses.GET, BASE + "/fetchMessage", json={"code": 0, "data": [GROUP_DATA]})
    bot = MiraiBot()
    received = []
    bot.on(GroupMessage, received.append)
    count = bot.fetch_events_http(20)
    bot.close()
    assert count == 1
    assert received[0].sender_id == 111


def test_fetch_events_http_error_message(http):
    http.add(responses.GET, BASE + "/fetchMessage", json={"code": 1, "msg": "boom"})
    bot = MiraiBot()
    with pytest.raises(MiraiError, match="boom"):
        bot.fetch_events_http(20)
    bot._pool.shutdown()


def test_fetch_events_http_reauthenticates_on_code_3(http):
    http.add(responses.GET, BASE + "/fetchMessage", json={"code": 3, "msg": "lost"})
    http.add(responses.POST, BASE + "/release", json={"code": 0})
    http.add(responses.POST, BASE + "/auth", json={"code": 0, "session": "s2"})
    http.add(responses.POST, BASE + "/verify", json={"code": 0})
    bot = MiraiBot()
    bot.auth_key = "placeholder"
    bot.qq = 42
    with pytest.raises(MiraiError, match="重新连接"):
        bot.fetch_events_http(20)
    bot._pool.shutdown()
    assert bot.session_key == "s2"
    assert json.loads(http.calls[2].request.body) == {"authKey": "placeholder"}


def test_process_event_dispatches_and_ignores_empty(http):
    bot = MiraiBot()
    received = []
    bot.on(GroupMessage, received.append)
    assert bot.process_event("") == []
    _wait(bot.process_event(json.dumps(GROUP_DATA)))
    bot.close()
    assert received[0].message_id == 5


def test_process_event_reconnects_on_code_4(http):
    http.add(responses.POST, BASE + "/release", json={"code": 0})
    http.add(responses.POST, BASE + "/auth", json={"code": 0, "session": "s3"})
    http.add(responses.POST, BASE + "/verify", json={"code": 0})
    http.add(responses.POST, BASE + "/config", json={"code": 0})
    bot = MiraiBot()
    bot.auth_key = "placeholder"
    bot.qq = 42
    with pytest.raises(MiraiError):
        bot.process_event(json.dumps({"code": 4}))
    bot._pool.shutdown()
    assert bot.session_key == "s3"
    assert http.calls[-1].request.url == BASE + "/config"


def test_set_cache_size_and_use_http_configure_session(http):
    http.add(responses.POST, BASE + "/config", json={"code": 0})
    bot = MiraiBot()
    assert bot.set_cache_size(100) is bot
    body = json.loads(http.calls[-1].request.body)
    assert body["cacheSize"] == 100
    assert body["enableWebsocket"] is True
    bot.use_http()
    body = json.loads(http.calls[-1].request.body)
    assert body["enableWebsocket"] is False
    assert bot.ws_enabled is False
    bot.use_websocket()
    assert json.loads(http.calls[-1].request.body)["enableWebsocket"] is True
    bot._pool.shutdown()


def test_event_loop_reports_errors_and_stops_on_close(http):
    http.add(responses.POST, BASE + "/config", json={"code": 0})
    http.add(responses.GET, BASE + "/fetchMessage", json={"code": 1, "msg": "boom"})
    bot = MiraiBot()
    assert bot.use_http() is bot
    errors = []

    def logger(message):
        errors.append(message)
        bot.close()

    bot.event_loop(logger)
    assert bot.ws_enabled is False
    assert errors == ["boom"]
    fetch_urls = [call.request.url for call in http.calls if "/fetchMessage" in call.request.url]
    assert len(fetch_urls) == 1
    assert parse_qs(urlparse(fetch_urls[0]).query)["count"] == ["20"]