from .branch_cache import BranchCache, choose_branch
from .change_requests import build_rows, classify
from .controls import (
    Control,
    ControlName,
    LoadingIndicator,
    MemoryControl,
    MemoryPage,
    Page,
    SelectControl,
)
from .errors import (
    FetchError,
    InvalidSelectionError,
    PresetTableError,
    UnknownRepositoryError,
    WorkflowError,
)
from .orchestrator import CompareOrchestrator
from .presets import PresetResolver
from .url_sync import UrlSynchronizer, build_compare_url, parse_compare_url
from .workflow_state import CompareWorkflowState, FlowStage

__all__ = [
    "BranchCache",
    "choose_branch",
    "build_rows",
    "classify",
    "Control",
    "ControlName",
    "LoadingIndicator",
    "MemoryControl",
    "MemoryPage",
    "Page",
    "SelectControl",
    "FetchError",
    "InvalidSelectionError",
    "PresetTableError",
    "UnknownRepositoryError",
    "WorkflowError",
    "CompareOrchestrator",
    "PresetResolver",
    "UrlSynchronizer",
    "build_compare_url",
    "parse_compare_url",
    "CompareWorkflowState",
    "FlowStage",
]
