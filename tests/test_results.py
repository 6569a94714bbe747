from __future__ import annotations

import pytest

from roomfinish.exceptions import BooleanOperationError, MissingConfigurationError
from roomfinish.quantities.results import Failure, FailureKind, Outcome


def test_success_carries_value() -> None:
    outcome = Outcome.success(3.0)
    assert outcome.ok
    assert outcome.unwrap() == 3.0
    assert outcome.value_or(0.0) == 3.0
    assert outcome.map(lambda v: v * 2).unwrap() == 6.0


def test_success_may_carry_none() -> None:
    outcome = Outcome.success(None)
    assert outcome.ok
    assert outcome.unwrap() is None
    assert outcome.value_or("default") == "default"


def test_failure_raises_the_matching_exception() -> None:
    cause = ValueError("overlay failed")
    outcome = Outcome.fail(FailureKind.BOOLEAN_OPERATION, "difference failed", cause)
    assert not outcome.ok
    assert outcome.value_or(1.5) == 1.5
    assert outcome.map(lambda v: v * 2).failure is outcome.failure
    with pytest.raises(BooleanOperationError) as exc_info:
        outcome.unwrap()
    assert exc_info.value.__cause__ is cause
    assert exc_info.value.details == {"kind": "boolean_operation"}


def test_failure_to_exception() -> None:
    exc = Failure(FailureKind.MISSING_CONFIGURATION, "field missing").to_exception()
    assert isinstance(exc, MissingConfigurationError)
    assert exc.message == "field missing"
