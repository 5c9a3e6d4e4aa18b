"""List Trello cards and create new cards from chat.

You need a developer key and a user token with access to the board and
lists the plugin works with:

    https://trello.com/app-key

Configuration::

    {
        "key": "your-trello-api-key",
        "token": "your-trello-user-token",
        "board": "board-id",
        "list": "list-id",
        "createIn": "list-id-new-cards-go-to",
    }
"""

from __future__ import annotations

import logging
import re
from typing import Any

from client import TrelloApiError, TrelloClient
from message import Message

logger = logging.getLogger(__name__)

CARD_URL = "https://trello.com/c/{card_id}"


class TrelloConfigError(ValueError):
    pass


def _require_option(config: dict, option: str, description: str) -> str:
    value = config.get(option)
    if not value or not isinstance(value, str):
        raise TrelloConfigError(f"you must pass {description}")
    return value


class TrelloPlugin:
    name = "Trello"
    PATTERN = re.compile(r"^trello\s+(\w+)\s?(.*)\Z")

    def __init__(self, config: dict | None = None, client: TrelloClient | None = None):
        if not isinstance(config, dict):
            raise TrelloConfigError("you must pass an options object")

        api_key = _require_option(config, "key", "a `key` option")
        token = _require_option(config, "token", "a `token` option")
        self.board_id = _require_option(config, "board", "a `board` option")
        self.default_list_id = _require_option(
            config, "list", "a list id in the `list` option"
        )
        self.create_list_id = config.get("createIn") or self.default_list_id
        self.log = config.get("log") or logger

        if client is None:
            timeout = int(config.get("request_timeout_sec", 20) or 20)
            client = TrelloClient(api_key, token, timeout=timeout)
        self.client = client
        self.members: dict[str, dict[str, Any]] | None = None

    async def initialize(self):
        self.log.info("trello plugin watching board %s", self.board_id)
        await self.fetch_members()

    async def terminate(self):
        await self.client.close()

    def matches(self, text: str) -> bool:
        return bool(self.PATTERN.match(text or ""))

    async def respond(self, message: Message) -> None:
        """Handle one matched message and close its reply channel."""
        match = self.PATTERN.match(message.text or "")
        if not match:
            message.done(self.help())
            return

        reply = None
        try:
            reply = await self._dispatch(match.group(1), match.group(2))
        finally:
            message.done(reply)

    async def _dispatch(self, command: str, tail: str) -> str:
        if command == "card":
            title = tail.strip()
            if not title:
                return self.help()
            return await self.create_card(title)

        if command == "show":
            return await self.show_cards(tail.strip() or None)

        if command in ("join", "leave"):
            pieces = tail.split()
            if len(pieces) < 2:
                return self.help()
            if command == "join":
                return await self.join_card(pieces[0], pieces[1])
            return await self.leave_card(pieces[0], pieces[1])

        return self.help()

    async def create_card(self, title: str) -> str:
        try:
            card = await self.client.create_card(
                list_id=self.create_list_id, title=title
            )
        except TrelloApiError as exc:
            return f"There was an error creating the card: {exc}"
        except Exception as exc:
            self.log.exception("unexpected error creating trello card")
            return f"There was an error creating the card: {exc}"

        self.log.info("trello card created")
        return f"Card created at {card.get('url')}"

    async def show_cards(self, member: str | None = None) -> str:
        members = await self.fetch_members()

        member_id = None
        if member:
            user = members.get(member)
            if user is None:
                return f"Trello doesn't know who {member} is."
            member_id = user.get("id")

        try:
            data = await self.client.get_list(
                list_id=self.default_list_id, cards="open"
            )
        except TrelloApiError as exc:
            return f"There was an error fetching the default list: {exc}"
        except Exception as exc:
            self.log.exception("unexpected error fetching trello list")
            return f"There was an error fetching the default list: {exc}"

        list_name = data.get("name")
        lines = [
            f"- {card.get('name')}"
            for card in data["cards"]
            if member_id is None or member_id in (card.get("idMembers") or [])
        ]

        if not lines and member_id is None:
            return f"{list_name} has no cards."
        if not lines:
            return f"{member} has nothing to do."
        if member_id is not None:
            return f"Cards for {member} in {list_name}:\n" + "\n".join(lines)
        return f"Cards in {list_name}:\n" + "\n".join(lines)

    async def fetch_members(self) -> dict[str, dict[str, Any]]:
        """Refresh the board members keyed by username.

        A failed fetch is logged and yields an empty mapping; the previously
        fetched members are kept.
        """
        try:
            data = await self.client.get_board_members(board_id=self.board_id)
        except TrelloApiError as exc:
            self.log.warning("problem fetching trello board users: %s", exc)
            return {}
        except Exception:
            self.log.exception("unexpected error fetching trello board users")
            return {}

        self.members = {str(user.get("username")): user for user in data}
        return self.members

    async def _resolve_member(
        self, member: str
    ) -> tuple[str, dict[str, Any] | None]:
        # Unknown usernames are passed through so raw Trello member ids work.
        members = await self.fetch_members()
        user = members.get(member)
        if user is None:
            return member, None
        return str(user.get("id")), user

    async def join_card(self, card_id: str, member: str) -> str:
        member_id, user = await self._resolve_member(member)
        try:
            await self.client.add_card_member(card_id=card_id, member_id=member_id)
        except TrelloApiError as exc:
            return f"There was an error joining {member} to card <{card_id}>: {exc}"
        except Exception as exc:
            self.log.exception("unexpected error joining trello card %s", card_id)
            return f"There was an error joining {member} to card <{card_id}>: {exc}"

        display = (user.get("fullName") if user else None) or member
        return f"{display} has joined card {CARD_URL.format(card_id=card_id)}"

    async def leave_card(self, card_id: str, member: str) -> str:
        member_id, user = await self._resolve_member(member)
        try:
            await self.client.remove_card_member(
                card_id=card_id, member_id=member_id
            )
        except TrelloApiError as exc:
            return f"There was an error removing {member} from card <{card_id}>: {exc}"
        except Exception as exc:
            self.log.exception("unexpected error leaving trello card %s", card_id)
            return f"There was an error removing {member} from card <{card_id}>: {exc}"

        display = (user.get("fullName") if user else None) or member
        return f"{display} has left card {CARD_URL.format(card_id=card_id)}"

    def help(self) -> str:
        lines = [
            "add and read Trello cards",
            "trello card <card title> - create a new card",
            "trello join <card-id> <user-name> - add user to card",
            "trello leave <card-id> <user-name> - remove user from card",
            "trello show - show all open cards in the default list",
            "trello show <user-name> - show all open cards this user has joined",
        ]
        return "\n".join(lines)
