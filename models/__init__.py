from .compare import (
    BranchDescriptor,
    BranchList,
    ChangeRequest,
    ChangeRequestRow,
    CompareMethod,
    CompareRequest,
    ParameterPreset,
    SelectionState,
    Unit,
)

__all__ = [
    "BranchDescriptor",
    "BranchList",
    "ChangeRequest",
    "ChangeRequestRow",
    "CompareMethod",
    "CompareRequest",
    "ParameterPreset",
    "SelectionState",
    "Unit",
]
