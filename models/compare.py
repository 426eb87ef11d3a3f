"""Pydantic models for the comparison workflow."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field, field_validator


class CompareMethod(str, Enum):
    """Algorithms the comparison server understands."""

    BASE = "base"
    GUESS_WORST = "guess-worst"
    EXACT_WORST = "exact-worst"
    ASYMPTOTIC = "asymptotic"


class Unit(str, Enum):
    """Unit the comparison is reported in."""

    WEIGHT = "weight"
    TIME = "time"


class BranchDescriptor(BaseModel):
    """A branch (or tag) name and the display string of its latest commit."""

    name: str
    last_commit: str = ""

    model_config = {"frozen": True}

    @classmethod
    def from_pair(cls, pair: Any) -> "BranchDescriptor":
        """Build from the server's ``[name, last_commit]`` pair."""
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise ValueError(f"Expected a [name, commit] pair, got {pair!r}")
        return cls(name=str(pair[0]), last_commit=str(pair[1]))


# Server order, never re-sorted.
BranchList = Tuple[BranchDescriptor, ...]


class ParameterPreset(BaseModel):
    """Default comparison parameters of one repository."""

    repo: str = Field(..., min_length=1)
    threshold: str = Field(default="10", description="Percentage, kept as a string")
    path_pattern: str = Field(..., description="Comma-separated glob patterns")
    method: CompareMethod = CompareMethod.GUESS_WORST
    ignore_errors: str = "true"
    unit: Unit = Unit.WEIGHT

    model_config = {"frozen": True}

    @field_validator("threshold")
    @classmethod
    def _numeric_threshold(cls, value: str) -> str:
        if not value.strip().isdigit():
            raise ValueError(f"threshold must be a non-negative integer, got {value!r}")
        return value.strip()

    @field_validator("ignore_errors")
    @classmethod
    def _bool_string(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in {"true", "false"}:
            raise ValueError(f"ignore_errors must be 'true' or 'false', got {value!r}")
        return value

    @property
    def patterns(self) -> list[str]:
        return [p.strip() for p in self.path_pattern.split(",") if p.strip()]

    def as_query(self) -> Dict[str, str]:
        """All fields as strings, in the order they appear in a compare URL."""
        return {
            "repo": self.repo,
            "threshold": self.threshold,
            "path_pattern": self.path_pattern,
            "method": self.method.value,
            "ignore_errors": self.ignore_errors,
            "unit": self.unit.value,
        }


class CompareRequest(BaseModel):
    """Everything encoded into one ``/compare`` navigation."""

    preset: ParameterPreset
    old: str = Field(..., min_length=1)
    new: str = Field(..., min_length=1)
    pallet: Optional[str] = None
    extrinsic: Optional[str] = None
    git_pull: Optional[bool] = None


class SelectionState(BaseModel):
    """The user's last chosen repository and branches."""

    repo: Optional[str] = None
    first_branch: Optional[str] = None
    second_branch: Optional[str] = None


class ChangeRequest(BaseModel):
    """An open pull request as listed by the GitHub API."""

    number: int
    title: str = ""
    body: str = ""
    author: str = ""
    head_ref: str
    base_ref: str
    # None when the source fork has been deleted.
    head_owner: Optional[str] = None
    base_owner: str
    updated_at: datetime
    url: Optional[str] = None

    @classmethod
    def from_github(cls, raw: Dict[str, Any]) -> "ChangeRequest":
        """Flatten one item of ``GET /repos/{owner}/{repo}/pulls``."""
        head = raw.get("head") or {}
        base = raw.get("base") or {}
        head_repo = head.get("repo") or {}
        base_repo = base.get("repo") or {}
        return cls(
            number=raw["number"],
            title=raw.get("title") or "",
            body=raw.get("body") or "",
            author=(raw.get("user") or {}).get("login", ""),
            head_ref=head["ref"],
            base_ref=base["ref"],
            head_owner=(head_repo.get("owner") or {}).get("login"),
            base_owner=(base_repo.get("owner") or {}).get("login", ""),
            updated_at=raw["updated_at"],
            url=raw.get("html_url"),
        )


class ChangeRequestRow(BaseModel):
    """A change request as shown in the list, with its classification."""

    request: ChangeRequest
    highlighted: bool = False
    disabled: bool = False

    @property
    def display_title(self) -> str:
        return self.request.title[:100]
