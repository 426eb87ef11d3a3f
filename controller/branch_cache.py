"""In-memory branch lists per repository with de-duplicated fetches."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Dict, Optional, Tuple

from loguru import logger

from config.settings import settings
from controller.errors import FetchError, InvalidSelectionError
from models.compare import BranchList

# (repo, force_refresh) -> branches
BranchFetcher = Callable[[str, bool], Awaitable[BranchList]]

DEFAULT_BRANCH = "master"


class BranchCache:
    """
    Repository -> BranchList map filled on demand.

    A repository missing from the map has not been loaded yet; an empty
    tuple means it was loaded and has no branches. At most one fetch per
    repository is in flight: later callers await the same task.
    """

    def __init__(self, fetcher: BranchFetcher, timeout: Optional[float] = None) -> None:
        self._fetcher = fetcher
        self._timeout = settings.fetch_timeout_seconds if timeout is None else timeout
        self._entries: Dict[str, BranchList] = {}
        # repo -> (task, whether that task makes the server fetch)
        self._in_flight: Dict[str, Tuple[asyncio.Task, bool]] = {}

    def get(self, repo: str) -> Optional[BranchList]:
        return self._entries.get(repo)

    def is_loaded(self, repo: str) -> bool:
        return repo in self._entries

    def is_loading(self, repo: str) -> bool:
        return repo in self._in_flight

    async def load(self, repo: str, force_refresh: bool = False) -> BranchList:
        """
        Return the branches of `repo`, fetching them if needed.

        A forced load never settles for a plain listing: if one is in flight
        it waits for it, then starts a forced fetch that concurrent forced
        callers share.
        """
        if not force_refresh and repo in self._entries:
            logger.debug(f"Branch cache hit for '{repo}'")
            return self._entries[repo]

        while True:
            entry = self._in_flight.get(repo)
            if entry is None:
                task = asyncio.ensure_future(self._fetch(repo, force_refresh))
                self._in_flight[repo] = (task, force_refresh)
                task.add_done_callback(lambda t: self._forget(repo, t))
                # A cancelled caller must not cancel the fetch for the others.
                return await asyncio.shield(task)

            task, forced = entry
            if forced or not force_refresh:
                logger.debug(f"Joining in-flight branch fetch for '{repo}'")
                return await asyncio.shield(task)

            logger.debug(f"Waiting for plain branch fetch of '{repo}' before refreshing")
            try:
                await asyncio.shield(task)
            except FetchError:
                pass
            self._forget(repo, task)

    def _forget(self, repo: str, task: asyncio.Task) -> None:
        entry = self._in_flight.get(repo)
        if entry is not None and entry[0] is task:
            del self._in_flight[repo]

    async def _fetch(self, repo: str, force_refresh: bool) -> BranchList:
        try:
            branches = await asyncio.wait_for(
                self._fetcher(repo, force_refresh), timeout=self._timeout
            )
        except asyncio.TimeoutError as exc:
            logger.warning(f"Branch fetch for '{repo}' timed out after {self._timeout}s")
            raise FetchError(repo, f"timed out after {self._timeout}s") from exc
        except FetchError as exc:
            logger.warning(f"Branch fetch for '{repo}' failed: {exc.reason}")
            raise

        self._entries[repo] = tuple(branches)
        logger.info(f"Cached {len(branches)} branches for '{repo}'")
        return self._entries[repo]


def _validate(name: Optional[str], branches: BranchList) -> str:
    if not name or all(b.name != name for b in branches):
        raise InvalidSelectionError(name or "")
    return name


def choose_branch(
    branches: BranchList,
    url_value: Optional[str] = None,
    persisted: Optional[str] = None,
) -> Optional[str]:
    """
    Pick the value of a branch selector after a list arrives.

    Priority: the URL value, then the persisted value, then "master". The
    first one that names a branch in the list wins; None leaves the
    selector unset.
    """
    for source, candidate in (("url", url_value), ("persisted", persisted)):
        if candidate is None:
            continue
        try:
            return _validate(candidate, branches)
        except InvalidSelectionError as exc:
            logger.debug(f"Ignoring {source} selection: {exc}")

    if any(b.name == DEFAULT_BRANCH for b in branches):
        return DEFAULT_BRANCH
    return None
