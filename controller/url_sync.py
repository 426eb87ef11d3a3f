"""Keeps named controls and the page's query string in step."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional
from urllib.parse import unquote, urlsplit

from loguru import logger

from controller.controls import Control, ControlName, Page
from models.compare import CompareRequest, ParameterPreset
from utils.helpers import (
    build_url,
    parse_bool,
    query_pairs,
    remove_query_param,
    set_query_param,
    to_query_value,
)

COMPARE_PATH = "/compare"

# Order of the preset part of a compare URL.
PRESET_FIELDS = ("repo", "threshold", "path_pattern", "method", "ignore_errors", "unit")


def build_compare_url(
    preset: ParameterPreset,
    old: str,
    new: str,
    *,
    pallet: Optional[str] = None,
    extrinsic: Optional[str] = None,
    git_pull: Optional[bool] = None,
) -> str:
    """
    Serialize a full comparison request into a ``/compare`` URL.

    This is the only place a compare URL is assembled. Optional filters are
    added only when given.
    """
    request = CompareRequest(
        preset=preset,
        old=old,
        new=new,
        pallet=pallet,
        extrinsic=extrinsic,
        git_pull=git_pull,
    )
    params: Dict[str, str] = request.preset.as_query()
    params["old"] = request.old
    params["new"] = request.new
    if request.pallet:
        params["pallet"] = request.pallet
    if request.extrinsic:
        params["extrinsic"] = request.extrinsic
    if request.git_pull is not None:
        params["git_pull"] = to_query_value(request.git_pull)
    return build_url(COMPARE_PATH, params)


def parse_compare_url(url: str) -> CompareRequest:
    """Inverse of build_compare_url. Raises ValueError on missing fields."""
    params = dict(query_pairs(url))
    missing = [f for f in (*PRESET_FIELDS, "old", "new") if not params.get(f)]
    if missing:
        raise ValueError(f"Compare URL lacks {', '.join(missing)}")
    preset = ParameterPreset(**{f: params[f] for f in PRESET_FIELDS})
    return CompareRequest(
        preset=preset,
        old=params["old"],
        new=params["new"],
        pallet=params.get("pallet") or None,
        extrinsic=params.get("extrinsic") or None,
        git_pull=parse_bool(params.get("git_pull") or None),
    )


class UrlSynchronizer:
    """Reads initial control values from the URL and redirects on change."""

    def __init__(self, page: Page) -> None:
        self._page = page

    @property
    def page(self) -> Page:
        return self._page

    def read_param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """The decoded query value of `name`, or `default` when absent or empty."""
        for key, value in query_pairs(self._page.url):
            if key == name:
                return value if value != "" else default
        return default

    def selected_row(self) -> Optional[str]:
        """The URL fragment naming a table row to pre-select, if any."""
        fragment = unquote(urlsplit(self._page.url).fragment)
        return fragment or None

    def redirect(self, name: str, value: Any) -> None:
        """Navigate to the current URL with `name` set to `value`."""
        text = to_query_value(value)
        if text is None or text == "":
            logger.warning(f"redirect: invalid value {value!r} for arg {name}")
            return
        url = set_query_param(self._page.url, name, text)
        logger.info(f"Redirecting to: {url}")
        self._page.navigate(url)

    def replace_param(self, name: str, value: Any) -> None:
        """Rewrite `name` in the current URL in place; None or "" removes it."""
        text = to_query_value(value)
        if text is None or text == "":
            url = remove_query_param(self._page.url, name)
        else:
            url = set_query_param(self._page.url, name, text)
        if url != self._page.url:
            logger.debug(f"Replacing URL with: {url}")
            self._page.replace(url)

    def navigate(self, url: str) -> None:
        self._page.navigate(url)

    def bind(self, controls: Mapping[ControlName, Control]) -> None:
        """Seed every control from the URL and redirect when it changes."""
        for name, control in controls.items():
            key = ControlName(name).value
            current = self.read_param(key)
            if current is not None and key == ControlName.IGNORE_ERRORS.value:
                try:
                    control.set(parse_bool(current))
                except ValueError:
                    logger.warning(f"Ignoring non-boolean {key}={current!r} in URL")
            elif current is not None:
                control.set(current)
            control.on_change(lambda value, key=key: self.redirect(key, value))
