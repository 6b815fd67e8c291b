"""Event-driven bot on top of the mirai-api-http session."""

from __future__ import annotations

import json
import queue
import sys
import threading
import time
from collections import defaultdict
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

import websocket

from jwbot.api import MiraiApi, MiraiError
from jwbot.events import EVENT_CLASSES, CommandEvent, Event, Message, MessageType, build_event

_COUNT_PER_LOOP = 20
_LOOP_INTERVAL = 0.1
_RECONNECTED = "失去与mirai的连接，已重新连接。"
_CLOSED = object()

Handler = Callable[[Event], Any]


def _event_keys(event_type: type[Event] | str) -> tuple[list[str], type[Event] | None]:
    if isinstance(event_type, str):
        return [event_type], None
    if event_type is Message:
        return [kind.value for kind in MessageType], Message
    if event_type is CommandEvent:
        return ["Command"], CommandEvent
    names = [name for name, cls in EVENT_CLASSES.items() if cls is event_type]
    if not names:
        raise ValueError(f"cannot listen for {event_type!r}; pass an event type name instead")
    return names, event_type


class MiraiBot(MiraiApi):
    """A bot session that fetches events and hands them to registered handlers.

    Handlers run on a thread pool of ``workers`` threads.
    """

    def __init__(self, host: str = "localhost", port: int = 8080, workers: int = 4) -> None:
        super().__init__(host, port)
        self.cache_size = 4096
        self.ws_enabled = True
        self._handlers: dict[str, list[tuple[type[Event] | None, Handler]]] = defaultdict(list)
        self._pool = ThreadPoolExecutor(max_workers=workers)
        self._running = True

    def on(self, event_type: type[Event] | str, handler: Handler) -> MiraiBot:
        """Call ``handler`` for every event of ``event_type``.

        ``event_type`` is an event class or the name of an event type as sent
        by the server; ``Message`` matches friend, group and temp messages.
        """
        keys, factory = _event_keys(event_type)
        for key in keys:
            self._handlers[key].append((factory, handler))
        return self

    def set_cache_size(self, cache_size: int) -> MiraiBot:
        self.cache_size = cache_size
        self.session_configure(self.cache_size, self.ws_enabled)
        return self

    def use_websocket(self) -> MiraiBot:
        self.ws_enabled = True
        self.session_configure(self.cache_size, self.ws_enabled)
        return self

    def use_http(self) -> MiraiBot:
        self.ws_enabled = False
        self.session_configure(self.cache_size, self.ws_enabled)
        return self

    def event_loop(self, error_logger: Callable[[str], Any] | None = None) -> None:
        """Fetch and dispatch events until the bot is closed.

        Errors are passed to ``error_logger``, or printed to stderr without one.
        """
        self.session_configure(self.cache_size, self.ws_enabled)
        while self._running:
            try:
                if self.ws_enabled:
                    self.fetch_events_ws()
                else:
                    self.fetch_events_http(_COUNT_PER_LOOP)
            except Exception as exc:  # the loop must survive any handler or network failure
                if error_logger is None:
                    print(exc, file=sys.stderr)
                else:
                    error_logger(str(exc))
            if not self._running:
                break
            time.sleep(_LOOP_INTERVAL)

    def fetch_events_http(self, count: int = _COUNT_PER_LOOP) -> int:
        """Poll up to ``count`` events over HTTP and dispatch them; return how many came."""
        result = self.fetch_message(count)
        code = result.get("code")
        if code != 0:
            if code == 3:
                self.release()
                self.auth(self.auth_key, self.qq)
                raise MiraiError(_RECONNECTED)
            raise MiraiError(str(result.get("msg") or f"error code {code}"))
        received = 0
        for element in result.get("data") or []:
            self.handle_event(element)
            received += 1
        return received

    def fetch_events_ws(self) -> None:
        """Receive events over websockets until either connection closes."""
        events: queue.Queue[Any] = queue.Queue()
        urls = (
            f"ws://{self.host}:{self.port}/all?sessionKey={self.session_key}",
            f"ws://{self.host}:{self.port}/command?authKey={self.auth_key}",
        )
        apps = [
            websocket.WebSocketApp(url, on_message=lambda _ws, text: events.put(text))
            for url in urls
        ]

        def run(app: websocket.WebSocketApp) -> None:
            try:
                app.run_forever()
            finally:
                events.put(_CLOSED)

        threads = [threading.Thread(target=run, args=(app,), daemon=True) for app in apps]
        for thread in threads:
            thread.start()
        try:
            while True:
                item = events.get()
                if item is _CLOSED:
                    break
                self.process_event(item)
            for app in apps:
                app.close()
            while True:
                try:
                    item = events.get_nowait()
                except queue.Empty:
                    break
                if item is not _CLOSED:
                    self.process_event(item)
        finally:
            for app in apps:
                app.close()

    def process_event(self, text: str) -> list[Future]:
        """Dispatch one event received as JSON text; reconnect on session errors."""
        if not text:
            return []
        data = json.loads(text)
        if "code" not in data:
            return self.handle_event(data)
        if data["code"] in (3, 4):
            self.release()
            self.auth(self.auth_key, self.qq)
            self.session_configure(self.cache_size, self.ws_enabled)
            raise MiraiError(_RECONNECTED)
        return []

    def handle_event(self, data: dict[str, Any]) -> list[Future]:
        """Schedule every matching handler for one event; return their futures."""
        name = str(data["type"]) if "type" in data else "Command"
        futures = []
        for factory, handler in list(self._handlers.get(name, ())):
            event = factory(self, data) if factory is not None else build_event(self, data)
            futures.append(self._pool.submit(handler, event))
        return futures

    def close(self) -> None:
        """Stop the event loop, release the session and wait for running handlers."""
        self._running = False
        self.release()
        self._pool.shutdown(wait=True)

    def __enter__(self) -> MiraiBot:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()