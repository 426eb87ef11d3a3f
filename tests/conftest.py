"""Pytest configuration for the workflow controller tests.

Ensures the project root is in sys.path so imports work correctly.
"""

import sys
from pathlib import Path

import pytest

# Add project root to sys.path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from models.compare import BranchDescriptor  # noqa: E402


def _make_branches(*names):
    return tuple(BranchDescriptor(name=n, last_commit=f"{i:012x}") for i, n in enumerate(names))


class CountingFetcher:
    """Fake branch fetcher that records calls and can be held open."""

    def __init__(self, branches=(), error=None):
        self.branches = branches
        self.error = error
        self.calls = []
        self.gate = None

    async def __call__(self, repo, force_refresh):
        self.calls.append((repo, force_refresh))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.branches


@pytest.fixture
def make_branches():
    return _make_branches


@pytest.fixture
def fetcher():
    return CountingFetcher(_make_branches("a", "master", "b"))
