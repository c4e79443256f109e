"""Type aliases and structured validation issues.

Uses Pydantic models for validation/serialization. Issues are built with
model_construct on the hot path since their fields come from trusted sources.
"""

from __future__ import annotations

from typing import Annotated, Any, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

# JSON type aliases - using Any for recursive types to avoid Pydantic resolution issues
JsonPrimitive = Union[str, int, float, bool, None]
JsonValue = Union[JsonPrimitive, list[Any], dict[str, Any]]
JsonDict = dict[str, Any]

PathSegment = Union[str, int]

_EMPTY_PATH: tuple[PathSegment, ...] = ()


class Issue(BaseModel):
    """One validation failure. Frozen so issue tuples can be shared safely."""

    model_config = ConfigDict(
        frozen=True, str_strip_whitespace=True, extra="forbid",
        revalidate_instances="never",
        json_schema_extra={"title": "Validation Issue", "examples": [{"message": "Input should be a valid string", "path": ["name"], "code": "string_type"}]},
    )

    message: Annotated[str, Field(min_length=1)]
    path: tuple[PathSegment, ...] = _EMPTY_PATH
    code: str = "invalid"

    @property
    def dotted_path(self) -> str:
        return ".".join(str(p) for p in self.path)

    def __str__(self) -> str:
        return f"{self.dotted_path}: {self.message}" if self.path else self.message


_IssueAdapter: TypeAdapter[Issue] = TypeAdapter(Issue)


def issue(message: str, *, path: tuple[PathSegment, ...] = _EMPTY_PATH, code: str = "invalid") -> Issue:
    """Create an Issue concisely (bypasses validation)."""
    return Issue.model_construct(message=message, path=path, code=code)


def validate_issue(data: JsonDict) -> Issue:
    """Validate dict as Issue (use for issues coming from user validators)."""
    return _IssueAdapter.validate_python(data)
