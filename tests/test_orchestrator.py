import asyncio
from datetime import datetime, timezone

import pytest

from controller.branch_cache import BranchCache
from controller.controls import ControlName, LoadingIndicator, MemoryControl, MemoryPage
from controller.errors import FetchError
from controller.orchestrator import CompareOrchestrator
from controller.presets import PresetResolver
from controller.url_sync import UrlSynchronizer, parse_compare_url
from controller.workflow_state import FlowStage
from models.compare import ChangeRequest
from storage.selection_store import SelectionKey, SelectionStore


class Harness:
    def __init__(self, tmp_path, fetcher, url="/", change_requests=None):
        self.page = MemoryPage(url)
        self.store = SelectionStore(tmp_path / "selection.json")
        self.controls = {name: MemoryControl() for name in ControlName}
        self.toggles = []
        self.orchestrator = CompareOrchestrator(
            cache=BranchCache(fetcher),
            store=self.store,
            resolver=PresetResolver(),
            url_sync=UrlSynchronizer(self.page),
            controls=self.controls,
            change_requests=change_requests,
            loading=LoadingIndicator(self.toggles.append),
        )

    @property
    def state(self):
        return self.orchestrator.state


@pytest.fixture
def harness(tmp_path, fetcher):
    return Harness(tmp_path, fetcher)


def _request(number, head_owner="paritytech", title="Update weights"):
    return ChangeRequest(
        number=number,
        title=title,
        head_ref=f"feature-{number}",
        base_ref="master",
        head_owner=head_owner,
        base_owner="paritytech",
        updated_at=datetime(2024, 5, number, tzinfo=timezone.utc),
    )


def test_missing_controls_rejected(tmp_path, fetcher):
    with pytest.raises(ValueError):
        CompareOrchestrator(
            cache=BranchCache(fetcher),
            store=SelectionStore(tmp_path / "s.json"),
            resolver=PresetResolver(),
            url_sync=UrlSynchronizer(MemoryPage()),
            controls={ControlName.REPO: MemoryControl()},
        )


@pytest.mark.asyncio
async def test_select_repo_loads_and_defaults_to_master(harness):
    assert harness.state.stage == FlowStage.IDLE
    assert await harness.orchestrator.select_repo("polkadot")

    assert harness.state.stage == FlowStage.BRANCHES_READY
    assert harness.controls[ControlName.OLD].options == ["a", "master", "b"]
    assert harness.state.first_branch == "master"
    assert harness.state.second_branch == "master"
    assert harness.store.get(SelectionKey.REPO) == "polkadot"
    assert harness.toggles == [True, False]


@pytest.mark.asyncio
async def test_persisted_selection_is_restored(tmp_path, fetcher):
    store = SelectionStore(tmp_path / "selection.json")
    store.set(SelectionKey.REPO, "polkadot")
    store.set(SelectionKey.FIRST, "b")
    store.set(SelectionKey.SECOND, "z")

    harness = Harness(tmp_path, fetcher)
    state = await harness.orchestrator.restore()

    assert state.repo == "polkadot"
    assert state.first_branch == "b"
    assert state.second_branch == "master"
    assert harness.controls[ControlName.OLD].get() == "b"


@pytest.mark.asyncio
async def test_url_overrides_persisted_selection(tmp_path, fetcher):
    store = SelectionStore(tmp_path / "selection.json")
    store.set(SelectionKey.REPO, "substrate")
    store.set(SelectionKey.FIRST, "b")

    harness = Harness(tmp_path, fetcher, url="/?repo=polkadot&old=a&new=b")
    state = await harness.orchestrator.restore()

    assert state.repo == "polkadot"
    assert state.first_branch == "a"
    assert state.second_branch == "b"
    assert fetcher.calls == [("polkadot", False)]


@pytest.mark.asyncio
async def test_restore_without_anything_stays_idle(harness, fetcher):
    state = await harness.orchestrator.restore()
    assert state.stage == FlowStage.IDLE
    assert fetcher.calls == []


@pytest.mark.asyncio
async def test_user_changes_are_persisted(harness, tmp_path):
    await harness.orchestrator.restore()
    await harness.orchestrator.select_repo("polkadot")

    harness.controls[ControlName.OLD].change("a")
    harness.controls[ControlName.NEW].change("b")

    reloaded = SelectionStore(tmp_path / "selection.json").state()
    assert reloaded.first_branch == "a"
    assert reloaded.second_branch == "b"
    assert harness.state.first_branch == "a"
    assert not harness.orchestrator.select_first("nope")
    assert harness.state.first_branch == "a"


@pytest.mark.asyncio
async def test_repo_control_change_triggers_load(harness, fetcher):
    await harness.orchestrator.restore()
    harness.controls[ControlName.REPO].change("substrate")
    await asyncio.sleep(0.01)

    assert fetcher.calls == [("substrate", False)]
    assert harness.state.stage == FlowStage.BRANCHES_READY


@pytest.mark.asyncio
async def test_launch_builds_url_and_navigates(harness):
    await harness.orchestrator.select_repo("polkadot")
    harness.orchestrator.select_second("b")

    url = harness.orchestrator.launch()

    assert harness.state.stage == FlowStage.LAUNCHING
    assert harness.page.history == [url]
    request = parse_compare_url(url)
    assert request.preset == PresetResolver().resolve("polkadot")
    assert (request.old, request.new) == ("master", "b")


@pytest.mark.asyncio
async def test_launch_requires_both_branches(tmp_path, fetcher, make_branches):
    fetcher.branches = make_branches("a", "b")
    harness = Harness(tmp_path, fetcher)
    await harness.orchestrator.select_repo("polkadot")

    assert harness.orchestrator.launch() is None
    assert harness.state.error
    assert harness.state.stage == FlowStage.BRANCHES_READY
    assert harness.page.history == []


@pytest.mark.asyncio
async def test_launch_unknown_repo_reports_error(harness):
    await harness.orchestrator.select_repo("kusama")
    assert harness.state.stage == FlowStage.BRANCHES_READY

    assert harness.orchestrator.launch() is None
    assert "kusama" in harness.state.error
    assert harness.page.history == []


@pytest.mark.asyncio
async def test_fetch_failure_returns_to_repo_selected(harness, fetcher):
    fetcher.error = FetchError("polkadot", "HTTP 500")

    assert not await harness.orchestrator.select_repo("polkadot")
    assert harness.state.stage == FlowStage.REPO_SELECTED
    assert "HTTP 500" in harness.state.error
    assert harness.orchestrator.launch() is None
    assert harness.page.history == []
    assert harness.toggles == [True, False]


@pytest.mark.asyncio
async def test_refresh_forces_fetch(harness, fetcher):
    assert not await harness.orchestrator.refresh()
    await harness.orchestrator.select_repo("polkadot")
    await harness.orchestrator.select_repo("polkadot")
    assert await harness.orchestrator.refresh()
    assert fetcher.calls == [("polkadot", False), ("polkadot", True)]


@pytest.mark.asyncio
async def test_stale_completion_is_dropped(harness, fetcher):
    fetcher.gate = asyncio.Event()
    slow = asyncio.ensure_future(harness.orchestrator.select_repo("polkadot"))
    await asyncio.sleep(0)
    harness.state.repo = "substrate"
    fetcher.gate.set()

    assert not await slow
    assert harness.state.branches == ()


@pytest.mark.asyncio
async def test_change_request_listing(tmp_path, fetcher):
    seen = []

    async def source(owner, repo):
        seen.append((owner, repo))
        return [_request(1), _request(3, head_owner="fork"), _request(2, title="misc")]

    harness = Harness(tmp_path, fetcher, url="/compare-mr?repo=substrate", change_requests=source)
    rows = await harness.orchestrator.list_change_requests()

    assert seen == [("paritytech", "substrate")]
    assert [r.request.number for r in rows] == [3, 2, 1]
    assert [r.disabled for r in rows] == [True, False, False]
    assert harness.state.highlighted == 1


@pytest.mark.asyncio
async def test_change_request_listing_failure(tmp_path, fetcher):
    async def source(owner, repo):
        raise FetchError(f"{owner}/{repo}", "HTTP 403")

    harness = Harness(tmp_path, fetcher, change_requests=source)
    assert await harness.orchestrator.list_change_requests("paritytech", "polkadot") == []
    assert "HTTP 403" in harness.state.error


@pytest.mark.asyncio
async def test_compare_change_request_refreshes_and_uses_its_refs(tmp_path, fetcher):
    async def source(owner, repo):
        return [_request(1)]

    harness = Harness(tmp_path, fetcher, change_requests=source)
    await harness.orchestrator.select_repo("polkadot")
    harness.orchestrator.select_first("a")
    harness.orchestrator.select_second("b")

    rows = await harness.orchestrator.list_change_requests("paritytech", "polkadot")
    url = await harness.orchestrator.compare_change_request(rows[0])

    assert fetcher.calls[-1] == ("polkadot", True)
    request = parse_compare_url(url)
    assert (request.old, request.new) == ("master", "feature-1")
    assert harness.page.history == [url]


@pytest.mark.asyncio
async def test_disabled_change_request_is_refused(tmp_path, fetcher):
    async def source(owner, repo):
        return [_request(1, head_owner="fork")]

    harness = Harness(tmp_path, fetcher, change_requests=source)
    rows = await harness.orchestrator.list_change_requests("paritytech", "polkadot")

    assert await harness.orchestrator.compare_change_request(rows[0]) is None
    assert fetcher.calls == []
    assert harness.page.history == []


@pytest.mark.asyncio
async def test_change_request_refresh_failure_aborts(tmp_path, fetcher):
    async def source(owner, repo):
        return [_request(1)]

    fetcher.error = FetchError("polkadot", "git fetch failed")
    harness = Harness(tmp_path, fetcher, change_requests=source)
    rows = await harness.orchestrator.list_change_requests("paritytech", "polkadot")

    assert await harness.orchestrator.compare_change_request(rows[0]) is None
    assert "git fetch failed" in harness.state.error
    assert harness.page.history == []


@pytest.mark.asyncio
async def test_user_pick_survives_refresh_over_url_value(tmp_path, fetcher):
    harness = Harness(tmp_path, fetcher, url="/?repo=polkadot&old=a")
    await harness.orchestrator.restore()
    assert harness.state.first_branch == "a"

    harness.controls[ControlName.OLD].change("b")
    assert await harness.orchestrator.refresh()

    assert harness.state.first_branch == "b"
    assert harness.controls[ControlName.OLD].get() == "b"
    assert UrlSynchronizer(harness.page).read_param("old") == "b"
    assert harness.page.history == []


@pytest.mark.asyncio
async def test_clearing_a_pick_drops_it_from_url(tmp_path, fetcher):
    harness = Harness(tmp_path, fetcher, url="/?repo=polkadot&old=a&new=b")
    await harness.orchestrator.restore()

    assert harness.orchestrator.select_second(None)
    assert harness.page.url == "/?repo=polkadot&old=a"
    assert harness.store.get(SelectionKey.SECOND) is None


@pytest.mark.asyncio
async def test_compare_change_request_refreshes_while_branches_load(tmp_path, fetcher):
    async def source(owner, repo):
        return [_request(1)]

    harness = Harness(tmp_path, fetcher, change_requests=source)
    rows = await harness.orchestrator.list_change_requests("paritytech", "polkadot")

    fetcher.gate = asyncio.Event()
    selecting = asyncio.ensure_future(harness.orchestrator.select_repo("polkadot"))
    await asyncio.sleep(0)
    comparing = asyncio.ensure_future(harness.orchestrator.compare_change_request(rows[0]))
    await asyncio.sleep(0)
    fetcher.gate.set()

    assert await selecting
    url = await comparing
    assert fetcher.calls == [("polkadot", False), ("polkadot", True)]
    assert harness.page.history == [url]
