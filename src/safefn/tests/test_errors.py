"""Tests for the error taxonomy, issues and Result values."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from safefn import (
    ConfigurationError,
    Err,
    ErrorCode,
    InvocationTimeoutError,
    Issue,
    Ok,
    SafeFnError,
    SchemaValidationError,
    UsageError,
    classify_exception,
)
from safefn.foundation.errors import issue, validate_issue


class TestClassification:
    def test_engine_errors_report_own_code(self) -> None:
        assert classify_exception(ConfigurationError("x")) == ErrorCode.CONFIGURATION
        assert classify_exception(UsageError("x")) == ErrorCode.USAGE
        assert classify_exception(InvocationTimeoutError(1.0)) == ErrorCode.TIMEOUT

    @pytest.mark.parametrize(("exc", "code"), [
        (TimeoutError("took too long"), ErrorCode.TIMEOUT),
        (PermissionError("forbidden"), ErrorCode.PERMISSION_DENIED),
        (KeyError("user"), ErrorCode.NOT_FOUND),
        (ValueError("bad value"), ErrorCode.INVALID_INPUT),
        (RuntimeError("boom"), ErrorCode.HANDLER_ERROR),
    ])
    def test_patterns(self, exc: Exception, code: ErrorCode) -> None:
        assert classify_exception(exc) == code

    def test_explicit_code_override(self) -> None:
        assert SafeFnError("x", code=ErrorCode.NOT_FOUND).code == ErrorCode.NOT_FOUND
        assert SafeFnError("x").code == ErrorCode.UNKNOWN


class TestSchemaValidationError:
    def test_from_mappings(self) -> None:
        err = SchemaValidationError([{"message": "too short", "path": ["name"], "code": "min_length"}])

        assert err.issues == (Issue(message="too short", path=("name",), code="min_length"),)
        assert str(err) == "too short"
        assert err.target is None

    def test_malformed_issue_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SchemaValidationError([{"message": ""}])

    def test_with_target_sets_code_once(self) -> None:
        err = SchemaValidationError.single("bad").with_target("output")
        assert (err.target, err.code) == ("output", ErrorCode.INVALID_OUTPUT)

        err.with_target("input")
        assert err.target == "output"

    def test_empty_issues(self) -> None:
        assert str(SchemaValidationError([])) == "Validation failed"

    def test_prefixed(self) -> None:
        err = SchemaValidationError([issue("bad", path=("a",))])
        assert err.prefixed(2)[0].path == (2, "a")
        assert err.issues[0].path == ("a",)


def test_issue_str_and_path() -> None:
    i = validate_issue({"message": "required", "path": ["user", 0, "id"]})
    assert i.dotted_path == "user.0.id"
    assert str(i) == "user.0.id: required"
    assert str(issue("plain")) == "plain"


def test_result_values() -> None:
    assert Ok(2).map(lambda v: v + 1).unwrap() == 3
    assert Err("e").unwrap_or(0) == 0
    assert Err("e").map_err(str.upper).unwrap_err() == "E"
    assert Ok(1) == Ok(1) and Ok(1) != Err(1)
    assert Ok(1).match(ok=lambda v: "ok", err=lambda e: "err") == "ok"
    with pytest.raises(RuntimeError):
        Err("e").unwrap()
