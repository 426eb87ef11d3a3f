"""State owned by the workflow orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from models.compare import BranchList, ChangeRequestRow


class FlowStage(str, Enum):
    """Stages of the manual comparison flow."""

    IDLE = "idle"
    REPO_SELECTED = "repo_selected"
    BRANCHES_LOADING = "branches_loading"
    BRANCHES_READY = "branches_ready"
    LAUNCHING = "launching"


@dataclass
class CompareWorkflowState:
    """Mutable state carried through both comparison flows."""

    stage: FlowStage = FlowStage.IDLE
    repo: Optional[str] = None

    # Set once the branch list of `repo` arrived
    branches: BranchList = ()
    first_branch: Optional[str] = None
    second_branch: Optional[str] = None

    # Change-request listing
    change_request_repo: Optional[str] = None
    change_requests: List[ChangeRequestRow] = field(default_factory=list)
    highlighted: int = 0

    # Message for display; cleared when the next operation starts
    error: Optional[str] = None
    # URL of the last launched comparison
    launched_url: Optional[str] = None
