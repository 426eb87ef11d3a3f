"""Exceptions raised by the comparison workflow."""

from __future__ import annotations

from typing import Optional


class WorkflowError(Exception):
    """Base class for every error the workflow controller raises."""


class UnknownRepositoryError(WorkflowError):
    """No preset exists for the requested repository."""

    def __init__(self, repo: Optional[str]) -> None:
        self.repo = repo
        super().__init__(f"Unknown repository: {repo}")


class PresetTableError(WorkflowError):
    """A preset table file could not be loaded."""


class FetchError(WorkflowError):
    """A remote listing (branches or change requests) could not be fetched."""

    def __init__(self, target: str, reason: str) -> None:
        self.target = target
        self.reason = reason
        super().__init__(f"Failed to fetch {target}: {reason}")


class InvalidSelectionError(WorkflowError):
    """A branch name is not part of the current branch list."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Branch '{name}' is not in the current branch list")
