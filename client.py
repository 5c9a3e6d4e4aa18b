from __future__ import annotations

import asyncio
from typing import Any

import aiohttp


class TrelloApiError(Exception):
    pass


class TrelloAuthError(TrelloApiError):
    pass


class TrelloClient:
    def __init__(
        self,
        api_key: str,
        token: str,
        base_url: str = "https://api.trello.com/1",
        timeout: int = 20,
    ):
        self.api_key = api_key
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout, trust_env=True)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    @staticmethod
    def _ensure_dict(data: Any, endpoint: str) -> dict[str, Any]:
        if not isinstance(data, dict):
            raise TrelloApiError(
                f"Unexpected response type for {endpoint}: {type(data).__name__}"
            )
        return data

    @staticmethod
    def _ensure_list_of_dict(data: Any, endpoint: str) -> list[dict[str, Any]]:
        if not isinstance(data, list):
            raise TrelloApiError(
                f"Unexpected response type for {endpoint}: {type(data).__name__}"
            )
        if not all(isinstance(item, dict) for item in data):
            raise TrelloApiError(
                f"Unexpected item type in response for {endpoint}: list contains non-object entries."
            )
        return data

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
    ) -> Any:
        query = params.copy() if params else {}
        query["key"] = self.api_key
        query["token"] = self.token
        url = f"{self.base_url}/{path.lstrip('/')}"

        session = await self._get_session()
        try:
            async with session.request(method=method, url=url, params=query) as resp:
                if resp.status in (401, 403):
                    raise TrelloAuthError("Authentication failed.")
                if resp.status >= 400:
                    body = await resp.text()
                    raise TrelloApiError(f"HTTP {resp.status}: {body[:300]}")
                if resp.content_length == 0:
                    return {}
                try:
                    return await resp.json()
                except aiohttp.ContentTypeError:
                    return {"text": await resp.text()}
                except ValueError as exc:
                    raise TrelloApiError(f"Invalid JSON response: {exc}") from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TrelloApiError(f"Network error: {exc}") from exc

    async def create_card(self, *, list_id: str, title: str) -> dict[str, Any]:
        data = await self._request(
            "POST",
            "/cards",
            params={"name": title, "idList": list_id},
        )
        return self._ensure_dict(data, "/cards")

    async def get_list(self, *, list_id: str, cards: str = "open") -> dict[str, Any]:
        data = await self._request(
            "GET",
            f"/lists/{list_id}",
            params={"cards": cards},
        )
        data = self._ensure_dict(data, f"/lists/{list_id}")
        data["cards"] = self._ensure_list_of_dict(
            data.get("cards", []), f"/lists/{list_id}.cards"
        )
        return data

    async def get_board_members(self, *, board_id: str) -> list[dict[str, Any]]:
        data = await self._request("GET", f"/boards/{board_id}/members")
        return self._ensure_list_of_dict(data, f"/boards/{board_id}/members")

    async def add_card_member(self, *, card_id: str, member_id: str) -> Any:
        return await self._request(
            "POST",
            f"/cards/{card_id}/idMembers",
            params={"value": member_id},
        )

    async def remove_card_member(self, *, card_id: str, member_id: str) -> Any:
        return await self._request(
            "DELETE",
            f"/cards/{card_id}/idMembers/{member_id}",
        )
