"""GitHub REST client for listing open pull requests."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
from loguru import logger
from pydantic import ValidationError

from config.settings import settings
from controller.errors import FetchError
from models.compare import ChangeRequest


class GitHubClient:
    """
    Async client for the change requests of a GitHub repository.

    Only the pulls listing is used. Without a token the anonymous rate
    limit applies, which is enough for occasional interactive use.
    """

    DEFAULT_HEADERS = {
        "User-Agent": "weight-compare-controller/1.0",
        "Accept": "application/vnd.github+json",
    }

    def __init__(
        self,
        api_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_url = api_url or settings.github_api_url
        self._token = token if token is not None else settings.github_token
        self._timeout = settings.fetch_timeout_seconds if timeout is None else timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "GitHubClient":
        headers = dict(self.DEFAULT_HEADERS)
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        self._client = httpx.AsyncClient(
            base_url=self._api_url,
            headers=headers,
            timeout=self._timeout,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()

    async def list_pull_requests(
        self,
        owner: str,
        repo: str,
        limit: Optional[int] = None,
    ) -> List[ChangeRequest]:
        """Open pull requests of `owner/repo`, most recently updated first."""
        assert self._client is not None, "Use as async context manager."
        target = f"{owner}/{repo}"
        params: Dict[str, Any] = {
            "state": "open",
            "per_page": limit or settings.change_request_limit,
            "sort": "updated",
            "direction": "desc",
        }
        logger.info(f"Listing open pull requests of {target}")
        try:
            response = await self._client.get(f"/repos/{owner}/{repo}/pulls", params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise FetchError(target, f"HTTP {exc.response.status_code}") from exc
        except httpx.RequestError as exc:
            raise FetchError(target, f"request error: {exc}") from exc
        except ValueError as exc:
            raise FetchError(target, f"invalid JSON: {exc}") from exc

        if not isinstance(data, list):
            raise FetchError(target, "expected a JSON array")

        requests: List[ChangeRequest] = []
        for raw in data:
            try:
                requests.append(ChangeRequest.from_github(raw))
            except (KeyError, TypeError, ValidationError) as exc:
                logger.warning(f"Skipping malformed pull request in {target}: {exc}")
        return requests
