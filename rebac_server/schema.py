from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CheckRequest(BaseModel):
    principal_id: int = Field(ge=0)
    resource_id: int = Field(ge=0)
    namespace: str = Field(min_length=1)
    relation: str = Field(min_length=1)


class CheckResponse(BaseModel):
    allowed: bool
    path: list[str] = []
    phase: str | None = None

    model_config = ConfigDict(from_attributes=True)


class TupleRequest(BaseModel):
    tuple: str  # e.g. "doc:1#viewer@group:5#member"


class TupleResponse(BaseModel):
    tuple: str
    changed: bool


class ImportRequest(BaseModel):
    lines: list[str]


class SkippedLine(BaseModel):
    line_number: int
    text: str
    reason: str

    model_config = ConfigDict(from_attributes=True)


class ImportResponse(BaseModel):
    created: int
    unchanged: int
    skipped: list[SkippedLine] = []

    model_config = ConfigDict(from_attributes=True)


class DeleteNodeResponse(BaseModel):
    removed: int


class UsersetsResponse(BaseModel):
    version: int
    rules: dict[str, list[str]]


class UsersetsRequest(BaseModel):
    # Nested mapping, e.g. {"doc": {"viewer": "viewer | owner"}}
    usersets: dict[str, Any]
