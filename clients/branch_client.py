"""Async client for the comparison server's branch listing endpoint."""

from __future__ import annotations

from typing import Any, Optional

import httpx
from loguru import logger

from config.settings import settings
from controller.errors import FetchError
from models.compare import BranchDescriptor, BranchList


class BranchClient:
    """Lists the branches and tags of a repository known to the server."""

    DEFAULT_HEADERS = {
        "User-Agent": "weight-compare-controller/1.0",
        "Accept": "application/json",
    }

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url or settings.base_url
        self._timeout = settings.fetch_timeout_seconds if timeout is None else timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "BranchClient":
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=self.DEFAULT_HEADERS,
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()

    async def list_branches(self, repo: str, fetch: bool = False) -> BranchList:
        """
        GET /branches for `repo`.

        `fetch=True` asks the server to `git fetch` before listing. The
        server's order is kept as-is.
        """
        assert self._client is not None, "Use as async context manager."
        params = {"repo": repo, "fetch": "true" if fetch else "false"}
        logger.info(f"Listing branches of '{repo}' (fetch={fetch})")
        try:
            response = await self._client.get("/branches", params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise FetchError(repo, f"HTTP {exc.response.status_code}") from exc
        except httpx.RequestError as exc:
            raise FetchError(repo, f"request error: {exc}") from exc
        except ValueError as exc:
            raise FetchError(repo, f"invalid JSON: {exc}") from exc

        if not isinstance(data, dict) or not isinstance(data.get("branch"), list):
            raise FetchError(repo, "response has no 'branch' list")
        try:
            branches = tuple(BranchDescriptor.from_pair(p) for p in data["branch"])
        except ValueError as exc:
            raise FetchError(repo, str(exc)) from exc
        logger.debug(f"'{repo}' has {len(branches)} branches")
        return branches
