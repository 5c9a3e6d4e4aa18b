from __future__ import annotations

from typing import Any, Callable

ReplyCallback = Callable[[dict[str, Any]], Any]


class Message:
    """A single inbound chat message with a one-shot reply channel.

    The hosting framework subscribes with ``on_reply`` before handing the
    message to a plugin. The plugin emits at most one reply through ``done``,
    after which the channel stays closed.
    """

    def __init__(self, channel: str, botname: str, text: str):
        self.channel = channel
        self.botname = botname
        self.text = text
        self._callback: ReplyCallback | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def on_reply(self, callback: ReplyCallback) -> None:
        if self._closed:
            return
        self._callback = callback

    def _envelope(self) -> dict[str, Any]:
        return {
            "channel": self.channel,
            "username": self.botname,
            "link_names": 1,
            "parse": "full",
            "unfurl_links": True,
        }

    def send(self, payload: str | dict[str, Any]) -> None:
        if self._closed or self._callback is None:
            return
        if isinstance(payload, str):
            payload = {"text": payload}
        reply = self._envelope()
        reply.update(payload)
        self._callback(reply)

    def done(self, reply: str | dict[str, Any] | None = None) -> None:
        """Send ``reply`` if given, then close the channel for good."""
        if reply:
            self.send(reply)
        self._callback = None
        self._closed = True
