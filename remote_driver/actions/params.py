"""
Parameter models for the scripted actions (Pydantic v2).
Validated before a step runs, so a bad script fails at the boundary.
- OpenUrlParams { url: AnyHttpUrl }
- WaitForParams { selector, by, timeout_ms<=60000, poll_ms }
- ClickParams { selector, by, method }
- TypeParams { selector, by, text<=4000 }
- ExtractTextParams { selector, by }
- SnapshotParams { path }
"""
# @file purpose: Define parameter schemas for scripted actions using Pydantic v2.

from typing import Annotated, Literal

from pydantic import AnyHttpUrl, BaseModel, Field, StringConstraints

NonEmptyStr = Annotated[str, StringConstraints(min_length=1, strip_whitespace=True)]
TimeoutMs = Annotated[int, Field(gt=0, le=60_000)]
TextLimited = Annotated[str, Field(max_length=4000)]
Finder = Literal[
    "class", "class_name", "css", "id", "link", "link_text", "name",
    "partial_link_text", "tag_name", "xpath",
]


class OpenUrlParams(BaseModel):
    url: AnyHttpUrl


class WaitForParams(BaseModel):
    selector: NonEmptyStr
    by: Finder = "css"
    timeout_ms: TimeoutMs = 10_000
    poll_ms: Annotated[int, Field(gt=0, le=5_000)] = 250


class ClickParams(BaseModel):
    selector: NonEmptyStr
    by: Finder = "css"
    method: Literal["native", "keydown", "javascript"] = "native"


class TypeParams(BaseModel):
    selector: NonEmptyStr
    by: Finder = "css"
    text: TextLimited
    clear_first: bool = True


class ExtractTextParams(BaseModel):
    selector: NonEmptyStr
    by: Finder = "css"


class SnapshotParams(BaseModel):
    path: NonEmptyStr = Field(..., description="Where to save the PNG file")
