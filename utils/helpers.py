"""Utility helper functions."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


def query_pairs(url: str) -> List[Tuple[str, str]]:
    """Decoded (name, value) pairs of a URL's query string, in order."""
    return parse_qsl(urlsplit(url).query, keep_blank_values=True)


def set_query_param(url: str, name: str, value: str) -> str:
    """
    Return `url` with `name` set to `value`.

    The first occurrence is replaced in place and any later duplicates are
    dropped; a missing parameter is appended. Everything else in the URL,
    fragment included, is kept.
    """
    parts = urlsplit(url)
    pairs: List[Tuple[str, str]] = []
    replaced = False
    for key, current in parse_qsl(parts.query, keep_blank_values=True):
        if key != name:
            pairs.append((key, current))
        elif not replaced:
            pairs.append((key, value))
            replaced = True
    if not replaced:
        pairs.append((name, value))
    return urlunsplit(parts._replace(query=urlencode(pairs)))


def remove_query_param(url: str, name: str) -> str:
    """Return `url` without any occurrence of `name`."""
    parts = urlsplit(url)
    pairs = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != name]
    return urlunsplit(parts._replace(query=urlencode(pairs)))


def build_url(path: str, params: Dict[str, str]) -> str:
    return f"{path}?{urlencode(params)}"


def to_query_value(value: Any) -> Optional[str]:
    """Stringify a control value; booleans become 'true' / 'false'."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def parse_bool(raw: Optional[str]) -> Optional[bool]:
    if raw is None:
        return None
    normalized = raw.strip().lower()
    if normalized in {"true", "1", "yes", "on"}:
        return True
    if normalized in {"false", "0", "no", "off"}:
        return False
    raise ValueError(f"Not a boolean: {raw!r}")
