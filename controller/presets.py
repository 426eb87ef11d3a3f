"""Repository-specific default comparison parameters."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Mapping, Optional

from loguru import logger
from pydantic import BaseModel, ValidationError

from controller.errors import PresetTableError, UnknownRepositoryError
from models.compare import CompareMethod, ParameterPreset, Unit

# Bump when the layout of a preset table file changes.
PRESET_TABLE_VERSION = 1

DEFAULT_PRESETS: Dict[str, ParameterPreset] = {
    "polkadot-sdk": ParameterPreset(
        repo="polkadot-sdk",
        path_pattern=",".join(
            [
                "substrate/frame/**/src/weights.rs",
                "polkadot/runtime/*/src/weights/**/*.rs",
                "polkadot/bridges/modules/*/src/weights.rs",
                "cumulus/**/weights/*.rs",
                "cumulus/**/weights/xcm/*.rs",
                "cumulus/**/src/weights.rs",
            ]
        ),
        method=CompareMethod.ASYMPTOTIC,
        unit=Unit.TIME,
    ),
    "substrate": ParameterPreset(
        repo="substrate",
        path_pattern="frame/*/src/weights.rs",
    ),
    "polkadot": ParameterPreset(
        repo="polkadot",
        path_pattern="runtime/**/src/weights/**/*.rs",
    ),
    "cumulus": ParameterPreset(
        repo="cumulus",
        path_pattern="parachains/runtimes/**/src/weights/*.rs",
    ),
}


class _PresetEntry(BaseModel):
    threshold: str = "10"
    path_pattern: str
    method: CompareMethod = CompareMethod.GUESS_WORST
    ignore_errors: str = "true"
    unit: Unit = Unit.WEIGHT


class _PresetFile(BaseModel):
    version: int
    presets: Dict[str, _PresetEntry]


class PresetResolver:
    """Maps a repository to its default ParameterPreset."""

    def __init__(self, presets: Optional[Mapping[str, ParameterPreset]] = None) -> None:
        self._presets: Dict[str, ParameterPreset] = dict(
            DEFAULT_PRESETS if presets is None else presets
        )

    @classmethod
    def from_file(cls, path: str | Path) -> "PresetResolver":
        """Load a versioned preset table from a JSON file."""
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as fh:
                parsed = _PresetFile.model_validate(json.load(fh))
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            raise PresetTableError(f"Cannot load presets from {path}: {exc}") from exc

        if parsed.version != PRESET_TABLE_VERSION:
            raise PresetTableError(
                f"Preset table {path} has version {parsed.version}, "
                f"expected {PRESET_TABLE_VERSION}"
            )
        presets = {
            repo: ParameterPreset(repo=repo, **entry.model_dump())
            for repo, entry in parsed.presets.items()
        }
        logger.info(f"Loaded {len(presets)} presets from {path}")
        return cls(presets)

    @property
    def repos(self) -> list[str]:
        return list(self._presets)

    def resolve(self, repo: Optional[str]) -> ParameterPreset:
        """Return the preset for `repo` or raise UnknownRepositoryError."""
        if not repo or repo not in self._presets:
            raise UnknownRepositoryError(repo)
        return self._presets[repo]


def default_resolver(presets_file: Optional[str] = None) -> PresetResolver:
    if presets_file:
        return PresetResolver.from_file(presets_file)
    return PresetResolver()
