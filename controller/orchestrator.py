"""Workflow orchestrator.

Drives the two ways of launching a comparison:

1. manual: pick a repository, wait for its branches, pick two of them;
2. change request: pick an open pull request and compare its branches.

Both end in a navigation to a URL produced by ``build_compare_url``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import List, Mapping, Optional, Set

from loguru import logger

from config.settings import settings
from controller.branch_cache import BranchCache, choose_branch
from controller.change_requests import build_rows
from controller.controls import Control, ControlName, LoadingIndicator, SelectControl
from controller.errors import FetchError, UnknownRepositoryError
from controller.presets import PresetResolver
from controller.url_sync import UrlSynchronizer, build_compare_url
from controller.workflow_state import CompareWorkflowState, FlowStage
from models.compare import BranchList, ChangeRequest, ChangeRequestRow
from storage.selection_store import SelectionKey, SelectionStore

# (owner, repo) -> open change requests
ChangeRequestSource = Callable[[str, str], Awaitable[List[ChangeRequest]]]


class CompareOrchestrator:
    """
    Owns the workflow state and wires cache, store, presets and URL together.

    Required controls: ``repo``, ``old`` (first branch) and ``new`` (second
    branch). Errors never escape the public coroutines; they end up in
    ``state.error`` and the log.
    """

    def __init__(
        self,
        cache: BranchCache,
        store: SelectionStore,
        resolver: PresetResolver,
        url_sync: UrlSynchronizer,
        controls: Mapping[ControlName, Control],
        change_requests: Optional[ChangeRequestSource] = None,
        loading: Optional[LoadingIndicator] = None,
    ) -> None:
        missing = {ControlName.REPO, ControlName.OLD, ControlName.NEW} - set(controls)
        if missing:
            raise ValueError(f"Missing controls: {sorted(m.value for m in missing)}")

        self._cache = cache
        self._store = store
        self._resolver = resolver
        self._url = url_sync
        self._controls = controls
        self._change_requests = change_requests
        self._loading = loading or LoadingIndicator()
        self._pending: Set[asyncio.Task] = set()
        self._bound = False
        self.state = CompareWorkflowState()

    # ── Manual flow ───────────────────────────────────────────────────────────

    async def restore(self) -> CompareWorkflowState:
        """Hook up the controls and reselect the repo from the URL or the store."""
        self._bind_controls()
        repo = self._url.read_param("repo") or self._store.get(SelectionKey.REPO)
        if repo:
            await self.select_repo(repo)
        return self.state

    async def select_repo(self, repo: str) -> bool:
        """Select `repo` and load its branches; True once they are ready."""
        self.state.error = None
        self.state.repo = repo
        self.state.stage = FlowStage.REPO_SELECTED
        self._controls[ControlName.REPO].set(repo)
        self._store.set(SelectionKey.REPO, repo)
        self._url.replace_param(ControlName.REPO.value, repo)
        return await self._load_branches(repo, force_refresh=False)

    async def refresh(self) -> bool:
        """Force the server to fetch and reload the current repo's branches."""
        if not self.state.repo:
            logger.warning("refresh: no repository selected")
            return False
        self.state.error = None
        return await self._load_branches(self.state.repo, force_refresh=True)

    def select_first(self, name: Optional[str]) -> bool:
        return self._select(ControlName.OLD, SelectionKey.FIRST, name)

    def select_second(self, name: Optional[str]) -> bool:
        return self._select(ControlName.NEW, SelectionKey.SECOND, name)

    def launch(self) -> Optional[str]:
        """Navigate to the comparison of the two selected branches."""
        self.state.error = None
        if (
            self.state.stage != FlowStage.BRANCHES_READY
            or not self.state.first_branch
            or not self.state.second_branch
        ):
            self._fail("Select a repository and two branches first")
            return None
        try:
            preset = self._resolver.resolve(self.state.repo)
        except UnknownRepositoryError as exc:
            self._fail(str(exc))
            return None

        url = build_compare_url(preset, self.state.first_branch, self.state.second_branch)
        self.state.stage = FlowStage.LAUNCHING
        self._navigate(url)
        return url

    # ── Change-request flow ───────────────────────────────────────────────────

    async def list_change_requests(
        self,
        owner: Optional[str] = None,
        repo: Optional[str] = None,
    ) -> List[ChangeRequestRow]:
        """Fetch, sort and classify the open change requests of `owner/repo`."""
        owner = owner or self._url.read_param("owner", settings.default_owner)
        repo = repo or self._url.read_param("repo", settings.default_repo)
        self.state.error = None
        if self._change_requests is None:
            self._fail("No change-request source configured")
            return []

        with self._loading:
            try:
                requests = await asyncio.wait_for(
                    self._change_requests(owner, repo),
                    timeout=settings.fetch_timeout_seconds,
                )
            except asyncio.TimeoutError:
                self._fail(f"Listing change requests of {owner}/{repo} timed out")
                return []
            except FetchError as exc:
                self._fail(str(exc))
                return []

        rows, highlighted = build_rows(requests)
        self.state.change_request_repo = repo
        self.state.change_requests = rows
        self.state.highlighted = highlighted
        logger.info(f"{len(rows)} open change requests in {owner}/{repo}, {highlighted} highlighted")
        return rows

    async def compare_change_request(
        self,
        row: ChangeRequestRow,
        repo: Optional[str] = None,
    ) -> Optional[str]:
        """Refresh the repo's branches, then compare base against head of `row`."""
        self.state.error = None
        request = row.request
        if row.disabled:
            self._fail(f"#{request.number} comes from a fork and cannot be compared")
            return None

        repo = (
            repo
            or self.state.change_request_repo
            or self._url.read_param("repo", settings.default_repo)
        )
        try:
            preset = self._resolver.resolve(repo)
        except UnknownRepositoryError as exc:
            self._fail(str(exc))
            return None

        with self._loading:
            try:
                await self._cache.load(repo, force_refresh=True)
            except FetchError as exc:
                self._fail(str(exc))
                return None

        url = build_compare_url(preset, request.base_ref, request.head_ref)
        self._navigate(url)
        return url

    # ── Internal helpers ──────────────────────────────────────────────────────

    async def _load_branches(self, repo: str, force_refresh: bool) -> bool:
        self.state.stage = FlowStage.BRANCHES_LOADING
        with self._loading:
            try:
                branches = await self._cache.load(repo, force_refresh=force_refresh)
            except FetchError as exc:
                if self.state.repo == repo:
                    self.state.stage = FlowStage.REPO_SELECTED
                    self._fail(str(exc))
                return False

        if self.state.repo != repo:
            # Another repository was selected while this one was loading.
            logger.debug(f"Dropping branches of '{repo}', '{self.state.repo}' is selected")
            return False
        self._apply_branches(branches)
        self.state.stage = FlowStage.BRANCHES_READY
        return True

    def _apply_branches(self, branches: BranchList) -> None:
        names = [b.name for b in branches]
        for name in (ControlName.OLD, ControlName.NEW):
            control = self._controls[name]
            if isinstance(control, SelectControl):
                control.set_options(names)

        first = choose_branch(
            branches, self._url.read_param("old"), self._store.get(SelectionKey.FIRST)
        )
        second = choose_branch(
            branches, self._url.read_param("new"), self._store.get(SelectionKey.SECOND)
        )
        self._controls[ControlName.OLD].set(first)
        self._controls[ControlName.NEW].set(second)
        self.state.branches = branches
        self.state.first_branch = first
        self.state.second_branch = second

    def _select(self, control: ControlName, key: SelectionKey, name: Optional[str]) -> bool:
        if name and all(b.name != name for b in self.state.branches):
            logger.warning(f"Ignoring selection of unknown branch '{name}'")
            return False
        self._controls[control].set(name or None)
        self._store.set(key, name or None)
        # The pick replaces any pending URL value.
        self._url.replace_param(control.value, name or None)
        if control == ControlName.OLD:
            self.state.first_branch = name or None
        else:
            self.state.second_branch = name or None
        return True

    def _bind_controls(self) -> None:
        if self._bound:
            return
        self._bound = True
        self._controls[ControlName.REPO].on_change(self._on_repo_change)
        self._controls[ControlName.OLD].on_change(self.select_first)
        self._controls[ControlName.NEW].on_change(self.select_second)

    def _on_repo_change(self, repo: Optional[str]) -> None:
        if not repo:
            return
        task = asyncio.ensure_future(self.select_repo(repo))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _navigate(self, url: str) -> None:
        self.state.launched_url = url
        logger.info(f"Opening: {url}")
        self._url.navigate(url)

    def _fail(self, message: str) -> None:
        logger.error(message)
        self.state.error = message
