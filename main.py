"""
Weight compare workflow controller – command line entry point.

Usage
-----
python main.py branches polkadot [--fetch]
python main.py compare polkadot --old master --new my-branch
python main.py mrs --owner paritytech --repo polkadot
python main.py mr 1234 --repo polkadot
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from contextlib import AsyncExitStack
from typing import Optional

import httpx
from dotenv import load_dotenv
from loguru import logger

load_dotenv(override=True)

from config.settings import settings  # noqa: E402 – must be after load_dotenv
from clients.branch_client import BranchClient  # noqa: E402
from clients.github_client import GitHubClient  # noqa: E402
from controller import (  # noqa: E402
    BranchCache,
    CompareOrchestrator,
    FetchError,
    MemoryPage,
    UrlSynchronizer,
)
from controller.controls import memory_controls  # noqa: E402
from controller.presets import default_resolver  # noqa: E402
from storage.selection_store import SelectionStore  # noqa: E402
from utils.helpers import build_url  # noqa: E402


def _configure_logging() -> None:
    logger.remove()
    # colorize=False: avoid ANSI escape codes that corrupt non-TTY output.
    logger.add(
        sys.stderr,
        level=settings.log_level,
        colorize=False,
        format="{time:HH:mm:ss} | {level: <8} | {message}",
    )
    if settings.log_file:
        import pathlib

        pathlib.Path(settings.log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(settings.log_file, level=settings.log_level, rotation="10 MB", retention="7 days")


async def _build(
    stack: AsyncExitStack,
    page_url: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> CompareOrchestrator:
    branch_client = await stack.enter_async_context(BranchClient(transport=transport))
    github_client = await stack.enter_async_context(GitHubClient(transport=transport))
    return CompareOrchestrator(
        cache=BranchCache(branch_client.list_branches),
        store=SelectionStore(),
        resolver=default_resolver(settings.presets_file),
        url_sync=UrlSynchronizer(MemoryPage(page_url)),
        controls=memory_controls(),
        change_requests=github_client.list_pull_requests,
    )


def _absolute(url: str) -> str:
    return settings.base_url.rstrip("/") + url


async def _run_branches(
    repo: str, fetch: bool, transport: Optional[httpx.AsyncBaseTransport] = None
) -> int:
    async with BranchClient(transport=transport) as client:
        try:
            branches = await client.list_branches(repo, fetch=fetch)
        except FetchError as exc:
            logger.error(str(exc))
            return 1
    for branch in branches:
        print(f"{branch.name:<60} {branch.last_commit}")
    return 0


async def _run_compare(
    repo: str,
    old: Optional[str],
    new: Optional[str],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> int:
    params = {k: v for k, v in (("repo", repo), ("old", old), ("new", new)) if v}
    async with AsyncExitStack() as stack:
        orchestrator = await _build(stack, build_url("/", params), transport)
        state = await orchestrator.restore()
        if state.error:
            return 1
        url = orchestrator.launch()
    if url is None:
        return 1
    print(_absolute(url))
    return 0


async def _run_list_mrs(
    owner: Optional[str],
    repo: Optional[str],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> int:
    async with AsyncExitStack() as stack:
        orchestrator = await _build(stack, "/compare-mr", transport)
        rows = await orchestrator.list_change_requests(owner, repo)
        if orchestrator.state.error:
            return 1
    for row in rows:
        mark = "x" if row.disabled else ("*" if row.highlighted else " ")
        req = row.request
        print(
            f"{mark} #{req.number:<6} {row.display_title:<60.60} {req.author:<16} "
            f"{req.head_ref} -> {req.base_ref}  {req.updated_at:%Y-%m-%d}"
        )
    print(f"{orchestrator.state.highlighted} highlighted")
    return 0


async def _run_mr(
    number: int,
    owner: Optional[str],
    repo: Optional[str],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> int:
    async with AsyncExitStack() as stack:
        orchestrator = await _build(stack, "/compare-mr", transport)
        rows = await orchestrator.list_change_requests(owner, repo)
        row = next((r for r in rows if r.request.number == number), None)
        if row is None:
            logger.error(f"No open change request #{number}")
            return 1
        url = await orchestrator.compare_change_request(row)
    if url is None:
        return 1
    print(_absolute(url))
    return 0


def main() -> None:
    _configure_logging()

    parser = argparse.ArgumentParser(description="Weight compare workflow controller")
    sub = parser.add_subparsers(dest="command", required=True)

    p_branches = sub.add_parser("branches", help="List the branches of a repository.")
    p_branches.add_argument("repo")
    p_branches.add_argument("--fetch", action="store_true", help="Make the server fetch first.")

    p_compare = sub.add_parser("compare", help="Build the compare URL for two branches.")
    p_compare.add_argument("repo")
    p_compare.add_argument("--old", help="First branch (default: last used or master).")
    p_compare.add_argument("--new", help="Second branch (default: last used or master).")

    p_mrs = sub.add_parser("mrs", help="List open change requests.")
    p_mrs.add_argument("--owner")
    p_mrs.add_argument("--repo")

    p_mr = sub.add_parser("mr", help="Build the compare URL for one change request.")
    p_mr.add_argument("number", type=int)
    p_mr.add_argument("--owner")
    p_mr.add_argument("--repo")

    args = parser.parse_args()

    if args.command == "branches":
        code = asyncio.run(_run_branches(args.repo, args.fetch))
    elif args.command == "compare":
        code = asyncio.run(_run_compare(args.repo, args.old, args.new))
    elif args.command == "mrs":
        code = asyncio.run(_run_list_mrs(args.owner, args.repo))
    else:
        code = asyncio.run(_run_mr(args.number, args.owner, args.repo))
    sys.exit(code)


if __name__ == "__main__":
    main()
