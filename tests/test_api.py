import json

import pytest
import responses

from jwbot.api import MiraiApi, MiraiError
from jwbot.message_chain import MessageChain

BASE = "http://localhost:8080"


@pytest.fixture
def rsps():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        yield mock


@pytest.fixture
def api():
    client = MiraiApi("localhost", 8080)
    client.session_key = "token"
    client.qq = 1000
    return client


def _body(call):
    return json.loads(call.request.body)


def test_auth_stores_session_and_verifies(rsps):
    rsps.add(responses.POST, BASE + "/auth", json={"code": 0, "session": "token"})
    rsps.add(responses.POST, BASE + "/verify", json={"code": 0})
    client = MiraiApi()
    assert client.auth("placeholder", 1000) is True
    assert client.session_key == "token"
    assert client.qq == 1000
    assert _body(rsps.calls[1]) == {"sessionKey": "token", "qq": 1000}


def test_auth_wrong_key(rsps):
    rsps.add(responses.POST, BASE + "/auth", json={"code": 1})
    with pytest.raises(MiraiError, match="Auth Key 不正确"):
        MiraiApi().auth("placeholder", 1000)


def test_send_group_message_with_quote(rsps, api):
    rsps.add(responses.POST, BASE + "/sendGroupMessage", json={"code": 0, "messageId": 55})
    chain = MessageChain().plain("hi")
    assert api.send_group_message(777, chain, quote=12) == 55
    assert _body(rsps.calls[0]) == {
        "sessionKey": "token",
        "target": 777,
        "messageChain": chain.to_json(),
        "quote": 12,
    }


def test_send_friend_message_without_quote_omits_key(rsps, api):
    rsps.add(responses.POST, BASE + "/sendFriendMessage", json={"code": 0, "messageId": 3})
    message_id = api.send_friend_message(42, MessageChain().plain("x"))
    assert message_id == 3
    assert "quote" not in _body(rsps.calls[0])


def test_send_temp_message_error_code(rsps, api):
    rsps.add(responses.POST, BASE + "/sendTempMessage", json={"code": 5, "msg": "boom"})
    with pytest.raises(MiraiError, match="boom"):
        api.send_temp_message(1, 2, MessageChain().plain("x"))


def test_non_200_status(rsps, api):
    rsps.add(responses.POST, BASE + "/recall", body="bad", status=500)
    with pytest.raises(MiraiError) as info:
        api.recall(9)
    assert str(info.value) == "[mirai-api-http error]: bad"


def test_network_error(api):
    with responses.RequestsMock():
        with pytest.raises(MiraiError, match="网络错误"):
            api.mute_all(1)


def test_version(rsps, api):
    rsps.add(responses.GET, BASE + "/about", json={"code": 0, "data": {"version": "1.2.0"}})
    assert api.get_mirai_api_http_version() == "1.2.0"


def test_member_info_error(rsps, api):
    rsps.add(responses.GET, BASE + "/memberInfo", json={"code": 3, "msg": "no member"})
    with pytest.raises(MiraiError, match="no member"):
        api.get_group_member_info(1, 2)


def test_set_group_member_name(rsps, api):
    rsps.add(responses.GET, BASE + "/memberInfo", json={"name": "old", "specialTitle": "t"})
    rsps.add(responses.POST, BASE + "/memberInfo", json={"code": 0})
    assert api.set_group_member_name(1, 2, "new") is True
    assert "memberId=2" in rsps.calls[0].request.url
    assert _body(rsps.calls[1])["info"] == {"name": "new", "specialTitle": "t"}


def test_get_managers(rsps, api):
    rsps.add(responses.GET, BASE + "/managers", json=[5, 6])
    assert api.get_managers() == [5, 6]
    assert "qq=1000" in rsps.calls[0].request.url


def test_get_message_from_id(rsps, api):
    data = {"type": "FriendMessage", "messageChain": []}
    rsps.add(responses.GET, BASE + "/messageFromId", json={"code": 0, "data": data})
    assert api.get_message_from_id(8) == data


def test_release_swallows_errors(rsps, api):
    rsps.add(responses.POST, BASE + "/release", json={"code": 3, "msg": "x"})
    assert api.release() is False


def test_respond_request(rsps, api):
    rsps.add(responses.POST, BASE + "/resp/newFriendRequestEvent", body="")
    assert api.respond_request("newFriendRequestEvent", 1, 2, 3, 0, "ok") is True
    body = _body(rsps.calls[0])
    assert (body["eventId"], body["fromId"], body["groupId"], body["message"]) == (1, 2, 3, "ok")


def test_upload_image(rsps, api, tmp_path):
    path = tmp_path / "a.png"
    path.write_bytes(b"\x89PNG")
    rsps.add(
        responses.POST,
        BASE + "/uploadImage",
        json={"imageId": "id", "url": "u", "path": "p"},
    )
    assert api.upload_image("group", str(path)) == {"imageId": "id", "url": "u", "path": "p"}
    assert b"\x89PNG" in rsps.calls[0].request.body


def test_upload_image_bad_kind_and_missing_file(api, tmp_path):
    with pytest.raises(ValueError):
        api.upload_image("nobody", str(tmp_path / "a.png"))
    with pytest.raises(MiraiError):
        api.upload_image("friend", str(tmp_path / "missing.png"))