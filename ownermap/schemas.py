"""Data models for ownermap."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Maintainers
# ---------------------------------------------------------------------------

class Maintainer(BaseModel):
    """One parsed line of a MAINTAINERS file."""

    model_config = ConfigDict(frozen=True)

    username: str = ""
    email: str = ""
    full_name: str = ""
    target: str = ""  # sub-scope label, e.g. "docs" in "docs: Jane <jane@x>"
    active: bool = True
    raw: str = ""

    def identities(self) -> list[str]:
        """Return the non-empty email and handle of this maintainer."""
        return [value for value in (self.email, self.username) if value]

    def render(self) -> str:
        """Re-render as a declaration line (not necessarily byte-identical to ``raw``)."""
        parts = ["" if self.active else "#"]
        if self.target:
            parts.append(f"{self.target}: ")
        parts.append(f"{self.full_name} <{self.email}>")
        if self.username:
            parts.append(f" (@{self.username})")
        return "".join(parts)

    def display(self) -> str:
        if self.username:
            return f"@{self.username}"
        return self.email


# ---------------------------------------------------------------------------
# Patches and changes
# ---------------------------------------------------------------------------

class PatchFile(BaseModel):
    src: str = ""  # empty for a created file
    dst: str = ""  # empty for a deleted file


class Change(BaseModel):
    number: int
    title: str = ""
    author: str = ""
    files: list[str] = Field(default_factory=list)
