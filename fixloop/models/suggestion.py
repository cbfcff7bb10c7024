"""
Suggestion Models
=================
FixSuggestion — what to do about a diagnostic.
DocLink       — a reference page that explains it.

action values:
    add | remove | change  — a concrete edit
    review                 — needs a human or AI to look at it
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

FIX_ACTIONS = {"add", "remove", "change", "review"}


class FixSuggestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str
    action: str = "review"
    example: Optional[str] = None
    auto_fixable: bool = False
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    @field_validator("action")
    @classmethod
    def known_action(cls, v: str) -> str:
        if v not in FIX_ACTIONS:
            raise ValueError(f"action must be one of {', '.join(sorted(FIX_ACTIONS))}")
        return v


class DocLink(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    url: str
