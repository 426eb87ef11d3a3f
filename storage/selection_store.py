"""Persisted repo / branch selection backed by a JSON file."""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from loguru import logger

from config.settings import settings
from models.compare import SelectionState


class SelectionKey(str, Enum):
    """The only keys the store accepts."""

    REPO = "selected_repo"
    FIRST = "selected_first"
    SECOND = "selected_second"


class SelectionStore:
    """
    Durable key/value store for the user's last selections.

    The whole map lives in one small JSON file. Every `set` rewrites it
    before returning so a reload (or a new process) sees the value.
    """

    def __init__(self, path: Optional[str | Path] = None) -> None:
        self._path = Path(path or settings.selection_file)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._values: Dict[str, str] = {}
        self._load()

    # ── Internal helpers ──────────────────────────────────────────────────────

    @staticmethod
    def _key(key: SelectionKey | str) -> SelectionKey:
        try:
            return SelectionKey(key)
        except ValueError:
            raise ValueError(f"Unknown selection key: {key!r}") from None

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            with open(self._path, "r", encoding="utf-8") as fh:
                raw = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(f"Ignoring unreadable selection file {self._path}: {exc}")
            return
        if not isinstance(raw, dict):
            logger.warning(f"Ignoring selection file {self._path}: not a JSON object")
            return

        known = {k.value for k in SelectionKey}
        # Keys from older layouts are dropped silently.
        self._values = {
            k: v for k, v in raw.items() if k in known and isinstance(v, str)
        }
        logger.debug(f"Loaded {len(self._values)} selections from {self._path}")

    def _save(self) -> None:
        with open(self._path, "w", encoding="utf-8") as fh:
            json.dump(self._values, fh, indent=2)

    # ── Public API ────────────────────────────────────────────────────────────

    def get(self, key: SelectionKey | str) -> Optional[str]:
        return self._values.get(self._key(key).value)

    def set(self, key: SelectionKey | str, value: Optional[str]) -> None:
        """Store `value` under `key`; None removes the entry."""
        name = self._key(key).value
        if value is None:
            self._values.pop(name, None)
        else:
            self._values[name] = value
        self._save()

    def state(self) -> SelectionState:
        return SelectionState(
            repo=self.get(SelectionKey.REPO),
            first_branch=self.get(SelectionKey.FIRST),
            second_branch=self.get(SelectionKey.SECOND),
        )
