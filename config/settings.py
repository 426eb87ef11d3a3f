"""Application configuration using pydantic-settings."""

from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration loaded from environment / .env file."""

    # ── Comparison server ─────────────────────────────────────────────────────
    # The server that renders /compare and answers /branches.
    base_url: str = Field(
        default="http://localhost:8080",
        description="Root URL of the weight comparison web server",
    )
    fetch_timeout_seconds: float = Field(
        default=30.0,
        description="Upper bound for a single branch or change-request fetch",
    )

    # ── Change requests ───────────────────────────────────────────────────────
    github_api_url: str = Field(default="https://api.github.com")
    github_token: Optional[str] = Field(
        default=None,
        description="Optional token to lift the anonymous GitHub rate limit",
    )
    default_owner: str = Field(default="paritytech")
    default_repo: str = Field(default="polkadot")
    change_request_limit: int = Field(default=30, ge=1, le=100)

    # ── Storage ───────────────────────────────────────────────────────────────
    selection_file: str = Field(default="data/selection.json")
    # JSON file replacing the built-in preset table, see controller/presets.py
    presets_file: Optional[str] = Field(default=None)

    # ── Logging ───────────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default="logs/weight-compare.log")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
