"""HTTP client for the mirai-api-http bot interface."""

from __future__ import annotations

import json
import os
import random
from typing import Any

import requests

from jwbot.message_chain import MessageChain

_IMAGE_KINDS = ("friend", "group", "temp")


class MiraiError(RuntimeError):
    """Raised when the mirai-api-http server cannot be reached or reports an error."""


def _read_file(file_name: str) -> bytes:
    try:
        with open(file_name, "rb") as handle:
            return handle.read()
    except OSError as exc:
        raise MiraiError("打开文件失败，请确认路径是否正确并检查文件是否存在") from exc


def _field(data: dict[str, Any], key: str) -> Any:
    try:
        return data[key]
    except (KeyError, TypeError) as exc:
        raise MiraiError(f"field {key!r} missing in response") from exc


class MiraiApi:
    """Session with a mirai-api-http server."""

    def __init__(self, host: str = "localhost", port: int = 8080) -> None:
        self.host = host
        self.port = port
        self.base_url = f"http://{host}:{port}"
        self.session = requests.Session()
        self.session_key = ""
        self.auth_key = ""
        self.qq = 0

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
        form: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        timeout: float | None = None,
        parse: bool = True,
    ) -> Any:
        headers = {}
        body: Any = form
        if payload is not None:
            body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
            headers["Content-Type"] = "application/json;charset=UTF-8"
        try:
            response = self.session.request(
                method,
                self.base_url + path,
                params=params,
                data=body,
                files=files,
                headers=headers,
                timeout=timeout,
            )
        except requests.RequestException as exc:
            raise MiraiError("网络错误") from exc
        if response.status_code != 200:
            raise MiraiError(f"[mirai-api-http error]: {response.text}")
        if not parse:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise MiraiError(f"invalid JSON in response: {exc}") from exc

    @staticmethod
    def _check(result: Any, message_key: str = "msg") -> Any:
        if not isinstance(result, dict):
            raise MiraiError("unexpected response shape")
        if result.get("code") != 0:
            raise MiraiError(str(result.get(message_key) or f"error code {result.get('code')}"))
        return result

    def _post_checked(self, path: str, payload: dict[str, Any]) -> bool:
        self._check(self._request("POST", path, payload=payload))
        return True

    def get_mirai_api_http_version(self) -> str:
        result = self._check(self._request("GET", "/about"), "errorMessage")
        return _field(_field(result, "data"), "version")

    def auth(self, auth_key: str, qq: int) -> bool:
        """Authenticate and bind the session to the bot account ``qq``."""
        result = self._request("POST", "/auth", payload={"authKey": auth_key})
        if not isinstance(result, dict) or result.get("code") != 0:
            raise MiraiError("Auth Key 不正确")
        self.session_key = _field(result, "session")
        self.auth_key = auth_key
        self.qq = int(qq)
        return self.session_verify()

    def _send(self, path: str, payload: dict[str, Any], chain: MessageChain, quote: int) -> int:
        payload["messageChain"] = chain.to_json()
        if quote:
            payload["quote"] = quote
        result = self._check(self._request("POST", path, payload=payload))
        return int(_field(result, "messageId"))

    def send_friend_message(self, target: int, chain: MessageChain, quote: int = 0) -> int:
        """Send to a friend; return the new message id."""
        payload = {"sessionKey": self.session_key, "target": int(target)}
        return self._send("/sendFriendMessage", payload, chain, quote)

    def send_group_message(self, target: int, chain: MessageChain, quote: int = 0) -> int:
        """Send to a group; return the new message id."""
        payload = {"sessionKey": self.session_key, "target": int(target)}
        return self._send("/sendGroupMessage", payload, chain, quote)

    def send_temp_message(self, group: int, qq: int, chain: MessageChain, quote: int = 0) -> int:
        """Send a temporary message to a group member; return the new message id."""
        payload = {"sessionKey": self.session_key, "group": int(group), "qq": int(qq)}
        return self._send("/sendTempMessage", payload, chain, quote)

    def upload_image(self, kind: str, file_name: str) -> dict[str, str]:
        """Upload an image for ``kind`` ("friend", "group" or "temp") messages."""
        if kind not in _IMAGE_KINDS:
            raise ValueError(f"image kind must be one of {_IMAGE_KINDS}, not {kind!r}")
        content = _read_file(file_name)
        files = {"img": (f"{random.randrange(1 << 31)}.png", content, "image/png")}
        result = self._request(
            "POST", "/uploadImage", form={"sessionKey": self.session_key, "type": kind}, files=files
        )
        return {key: _field(result, key) for key in ("imageId", "url", "path")}

    def upload_group_voice(self, file_name: str) -> dict[str, str]:
        """Upload a voice clip for group messages."""
        content = _read_file(file_name)
        files = {
            "voice": (f"{random.randrange(1 << 31)}.amr", content, "application/octet-stream")
        }
        result = self._request(
            "POST", "/uploadVoice", form={"sessionKey": self.session_key, "type": "group"}, files=files
        )
        return {
            "voiceId": _field(result, "voiceId"),
            "url": result.get("url") or "",
            "path": _field(result, "path"),
        }

    def _get_list(self, path: str, **params: Any) -> list[Any]:
        result = self._request("GET", path, params={"sessionKey": self.session_key, **params})
        if not isinstance(result, list):
            raise MiraiError("unexpected response shape")
        return result

    def get_friend_list(self) -> list[dict[str, Any]]:
        return self._get_list("/friendList")

    def get_group_list(self) -> list[dict[str, Any]]:
        return self._get_list("/groupList")

    def get_group_members(self, target: int) -> list[dict[str, Any]]:
        return self._get_list("/memberList", target=int(target))

    def get_group_member_info(self, group: int, member_id: int) -> dict[str, Any]:
        """Return a member's group card name and special title."""
        result = self._request(
            "GET",
            "/memberInfo",
            params={"sessionKey": self.session_key, "target": int(group), "memberId": int(member_id)},
        )
        if not isinstance(result, dict):
            raise MiraiError("unexpected response shape")
        if "code" in result:
            raise MiraiError(str(result.get("msg", "")))
        return result

    def set_group_member_info(self, group: int, member_id: int, info: dict[str, Any]) -> bool:
        payload = {
            "sessionKey": self.session_key,
            "target": int(group),
            "memberId": int(member_id),
            "info": dict(info),
        }
        return self._post_checked("/memberInfo", payload)

    def set_group_member_name(self, group: int, member_id: int, name: str) -> bool:
        info = self.get_group_member_info(group, member_id)
        info["name"] = name
        return self.set_group_member_info(group, member_id, info)

    def set_group_member_special_title(self, group: int, member_id: int, title: str) -> bool:
        info = self.get_group_member_info(group, member_id)
        info["specialTitle"] = title
        return self.set_group_member_info(group, member_id, info)

    def mute_all(self, group: int) -> bool:
        return self._post_checked("/muteAll", {"sessionKey": self.session_key, "target": int(group)})

    def unmute_all(self, group: int) -> bool:
        return self._post_checked("/unmuteAll", {"sessionKey": self.session_key, "target": int(group)})

    def mute(self, group: int, member_id: int, seconds: int) -> bool:
        payload = {
            "sessionKey": self.session_key,
            "target": int(group),
            "memberId": int(member_id),
            "time": int(seconds),
        }
        return self._post_checked("/mute", payload)

    def unmute(self, group: int, member_id: int) -> bool:
        payload = {"sessionKey": self.session_key, "target": int(group), "memberId": int(member_id)}
        return self._post_checked("/unmute", payload)

    def kick(self, group: int, member_id: int, reason: str = "") -> bool:
        payload = {
            "sessionKey": self.session_key,
            "target": int(group),
            "memberId": int(member_id),
            "reason_msg": reason,
        }
        return self._post_checked("/kick", payload)

    def recall(self, message_id: int) -> bool:
        return self._post_checked("/recall", {"sessionKey": self.session_key, "target": int(message_id)})

    def quit(self, group: int) -> bool:
        return self._post_checked("/quit", {"sessionKey": self.session_key, "target": int(group)})

    def get_group_config(self, group: int) -> dict[str, Any]:
        result = self._request(
            "GET", "/groupConfig", params={"sessionKey": self.session_key, "target": int(group)}
        )
        if not isinstance(result, dict):
            raise MiraiError("unexpected response shape")
        return result

    def set_group_config(self, group: int, config: dict[str, Any]) -> bool:
        payload = {"sessionKey": self.session_key, "target": int(group), "config": dict(config)}
        return self._post_checked("/groupConfig", payload)

    def get_message_from_id(self, message_id: int) -> dict[str, Any]:
        """Return the cached message event with the given id, as received."""
        result = self._check(
            self._request(
                "GET", "/messageFromId", params={"sessionKey": self.session_key, "id": int(message_id)}
            )
        )
        return _field(result, "data")

    def register_command(
        self, name: str, alias: list[str], description: str, usage: str
    ) -> MiraiApi:
        payload = {
            "authKey": self.auth_key,
            "name": name,
            "alias": list(alias),
            "description": description,
            "usage": usage,
        }
        self._request("POST", "/command/register", payload=payload, parse=False)
        return self

    def send_command(self, name: str, args: list[str]) -> MiraiApi:
        payload = {"authKey": self.auth_key, "name": name, "args": list(args)}
        self._request("POST", "/command/send", payload=payload, parse=False)
        return self

    def get_managers(self) -> list[int]:
        """Return the accounts that manage this bot."""
        result = self._request("GET", "/managers", params={"qq": int(self.qq)})
        if not isinstance(result, list):
            return []
        return [int(qq) for qq in result]

    def respond_request(
        self,
        kind: str,
        event_id: int,
        from_id: int,
        group_id: int,
        operate: int,
        message: str = "",
    ) -> bool:
        """Answer a friend, join or invitation request event of ``kind``."""
        payload = {
            "sessionKey": self.session_key,
            "eventId": event_id,
            "fromId": int(from_id),
            "groupId": int(group_id),
            "operate": operate,
            "message": message,
        }
        self._request("POST", f"/resp/{kind}", payload=payload, parse=False)
        return True

    def fetch_message(self, count: int) -> dict[str, Any]:
        """Return the raw answer of one event poll over HTTP."""
        result = self._request(
            "GET",
            "/fetchMessage",
            params={"sessionKey": self.session_key, "count": int(count)},
            timeout=10,
        )
        if not isinstance(result, dict):
            raise MiraiError("unexpected response shape")
        return result

    def session_verify(self) -> bool:
        return self._post_checked("/verify", {"sessionKey": self.session_key, "qq": int(self.qq)})

    def session_release(self) -> bool:
        return self._post_checked("/release", {"sessionKey": self.session_key, "qq": int(self.qq)})

    def session_configure(self, cache_size: int, enable_websocket: bool) -> bool:
        payload = {
            "sessionKey": self.session_key,
            "cacheSize": int(cache_size),
            "enableWebsocket": bool(enable_websocket),
        }
        return self._post_checked("/config", payload)

    def release(self) -> bool:
        """Release the session; return False instead of raising on failure."""
        try:
            return self.session_release()
        except (MiraiError, OSError, ValueError):
            return False