"""Outcome records - pure data definitions."""

from __future__ import annotations

from typing import Any, Literal, Self

from pydantic import BaseModel, ConfigDict


class SettledResult(BaseModel):
    """Outcome of one input to ``all_settled``."""

    model_config = ConfigDict(frozen=True)

    status: Literal["fulfilled", "rejected"]
    value: Any = None
    reason: Any = None

    @classmethod
    def fulfilled(cls, value: Any) -> Self:
        return cls(status="fulfilled", value=value)

    @classmethod
    def rejected(cls, reason: Any) -> Self:
        return cls(status="rejected", reason=reason)

    @property
    def ok(self) -> bool:
        return self.status == "fulfilled"
