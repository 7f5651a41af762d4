"""
Structured return value of a scripted action, reported to the runner and CLI.
"""
# @file purpose: Define ActionResult model for action outputs.

from __future__ import annotations

from typing import Any, Optional
from pydantic import BaseModel, Field


class ActionResult(BaseModel):
    """
    - ok: whether the step succeeded
    - extracted_content: text read from the page (extract_text only)
    - meta: diagnostics such as selector, url, element id or screenshot path
    """

    ok: bool = True
    extracted_content: Optional[str] = None
    meta: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def success(cls, **meta: Any) -> "ActionResult":
        return cls(ok=True, meta=meta)

    @classmethod
    def failure(cls, **meta: Any) -> "ActionResult":
        return cls(ok=False, meta=meta)
