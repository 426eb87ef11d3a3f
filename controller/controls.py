"""Capability interfaces for the page the controller drives."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from loguru import logger


class ControlName(str, Enum):
    """Logical names of the controls synchronised with the query string."""

    REPO = "repo"
    THRESHOLD = "threshold"
    PATH_PATTERN = "path_pattern"
    OLD = "old"
    NEW = "new"
    UNIT = "unit"
    METHOD = "method"
    IGNORE_ERRORS = "ignore_errors"


ChangeCallback = Callable[[Any], None]


@runtime_checkable
class Control(Protocol):
    """A named input the user can change."""

    def get(self) -> Any: ...

    def set(self, value: Any) -> None: ...

    def on_change(self, callback: ChangeCallback) -> None: ...


@runtime_checkable
class SelectControl(Control, Protocol):
    """A control with a list of options (repository and branch selectors)."""

    def set_options(self, options: Sequence[str]) -> None: ...


class Page(Protocol):
    """The current document location and ways to leave or rewrite it."""

    @property
    def url(self) -> str: ...

    def navigate(self, url: str) -> None: ...

    def replace(self, url: str) -> None: ...


class MemoryControl:
    """
    Plain in-memory control.

    `set` updates the value without notifying listeners, like a
    programmatic update in the browser. `change` simulates the user and
    fires every callback.
    """

    def __init__(self, value: Any = None, options: Optional[Sequence[str]] = None) -> None:
        self._value = value
        self.options: List[str] = list(options or [])
        self._callbacks: List[ChangeCallback] = []

    def get(self) -> Any:
        return self._value

    def set(self, value: Any) -> None:
        self._value = value

    def set_options(self, options: Sequence[str]) -> None:
        self.options = list(options)
        if self._value is not None and self._value not in self.options:
            self._value = None

    def on_change(self, callback: ChangeCallback) -> None:
        self._callbacks.append(callback)

    def change(self, value: Any) -> None:
        self._value = value
        for callback in list(self._callbacks):
            callback(value)


class MemoryPage:
    """A page whose navigation only records the target URL."""

    def __init__(self, url: str = "/") -> None:
        self._url = url
        self.history: List[str] = []

    @property
    def url(self) -> str:
        return self._url

    def navigate(self, url: str) -> None:
        logger.info(f"Navigating to {url}")
        self.history.append(url)
        self._url = url

    def replace(self, url: str) -> None:
        self._url = url


class LoadingIndicator:
    """Counts nested loading phases; shown while any one is active."""

    def __init__(self, on_toggle: Optional[Callable[[bool], None]] = None) -> None:
        self._depth = 0
        self._on_toggle = on_toggle

    @property
    def active(self) -> bool:
        return self._depth > 0

    def __enter__(self) -> "LoadingIndicator":
        self._depth += 1
        if self._depth == 1:
            self._toggle(True)
        return self

    def __exit__(self, *args: Any) -> None:
        self._depth -= 1
        if self._depth == 0:
            self._toggle(False)

    def _toggle(self, yes: bool) -> None:
        logger.debug(f"Loading: {yes}")
        if self._on_toggle:
            self._on_toggle(yes)


def memory_controls() -> Dict[ControlName, MemoryControl]:
    return {name: MemoryControl() for name in ControlName}
