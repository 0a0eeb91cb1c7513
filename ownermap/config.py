"""Configuration loading from YAML, env vars, and CLI defaults."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel

from ownermap.records import MAINTAINERS_FILE_NAME

DEFAULT_CONFIG_PATHS = [
    Path("ownermap.yaml"),
    Path.home() / ".ownermap" / "config.yaml",
]


class Config(BaseModel):
    repo_root: str = "."
    maintainers_file: str = MAINTAINERS_FILE_NAME
    user_email: str = ""
    user_handle: str = ""
    exclude_inactive: bool = False  # ignore "#"-disabled lines

    def identity(self) -> tuple[str, str]:
        return self.user_email, self.user_handle


def load_config(
    config_path: str | None = None,
    overrides: dict[str, Any] | None = None,
) -> Config:
    """Load config from YAML file, env vars, and caller overrides (in that priority)."""
    raw: dict[str, Any] = {}

    # 1. Load from YAML file
    paths_to_try = [Path(config_path)] if config_path else DEFAULT_CONFIG_PATHS
    for p in paths_to_try:
        if p.exists():
            with open(p) as f:
                raw = yaml.safe_load(f) or {}
            break

    # 2. Env var overrides
    if email := os.environ.get("OWNERMAP_EMAIL") or os.environ.get("GIT_AUTHOR_EMAIL"):
        raw["user_email"] = email
    if handle := os.environ.get("OWNERMAP_HANDLE"):
        raw["user_handle"] = handle
    if root := os.environ.get("OWNERMAP_ROOT"):
        raw["repo_root"] = root

    # 3. Caller overrides (CLI flags)
    if overrides:
        raw.update({k: v for k, v in overrides.items() if v is not None})

    return Config(**raw)
