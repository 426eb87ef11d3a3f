"""Classification of open change requests for the one-click flow."""

from __future__ import annotations

from typing import Iterable, List, Tuple

from models.compare import ChangeRequest, ChangeRequestRow

HIGHLIGHT_KEYWORD = "weight"


def is_disabled(request: ChangeRequest) -> bool:
    """Branches living in a fork (or a deleted one) cannot be compared."""
    return request.head_owner is None or request.head_owner != request.base_owner


def should_highlight(request: ChangeRequest) -> bool:
    """Does the title, description or either branch mention weights?"""
    texts = (request.title, request.body, request.head_ref, request.base_ref)
    return any(HIGHLIGHT_KEYWORD in (t or "").lower() for t in texts)


def classify(request: ChangeRequest) -> ChangeRequestRow:
    disabled = is_disabled(request)
    return ChangeRequestRow(
        request=request,
        disabled=disabled,
        highlighted=not disabled and should_highlight(request),
    )


def build_rows(requests: Iterable[ChangeRequest]) -> Tuple[List[ChangeRequestRow], int]:
    """Rows sorted by last update (newest first) and the highlighted count."""
    ordered = sorted(requests, key=lambda r: r.updated_at, reverse=True)
    rows = [classify(r) for r in ordered]
    return rows, sum(1 for r in rows if r.highlighted)
