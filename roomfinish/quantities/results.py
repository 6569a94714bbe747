"""Typed results for geometry calls that may fail per element or per room."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Generic, Optional, Type, TypeVar

from roomfinish.exceptions import (
    BooleanOperationError,
    DimensionResolutionError,
    GeometryExtractionError,
    MissingConfigurationError,
    RoomFinishError,
)


T = TypeVar("T")
U = TypeVar("U")


class FailureKind(str, Enum):
    GEOMETRY_EXTRACTION = "geometry_extraction"
    BOOLEAN_OPERATION = "boolean_operation"
    DIMENSION_RESOLUTION = "dimension_resolution"
    MISSING_CONFIGURATION = "missing_configuration"


_ERROR_FOR_KIND: Dict[FailureKind, Type[RoomFinishError]] = {
    FailureKind.GEOMETRY_EXTRACTION: GeometryExtractionError,
    FailureKind.BOOLEAN_OPERATION: BooleanOperationError,
    FailureKind.DIMENSION_RESOLUTION: DimensionResolutionError,
    FailureKind.MISSING_CONFIGURATION: MissingConfigurationError,
}


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    message: str
    error: Optional[BaseException] = None

    def to_exception(self) -> RoomFinishError:
        exc = _ERROR_FOR_KIND[self.kind](self.message, {"kind": self.kind.value})
        if self.error is not None:
            exc.__cause__ = self.error
        return exc


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Either a value or a :class:`Failure`; never both.

    A successful outcome may still carry ``None`` when "nothing" is a
    legitimate answer (an element without a solid, for example).
    """

    value: Optional[T] = None
    failure: Optional[Failure] = None

    @classmethod
    def success(cls, value: Optional[T]) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, kind: FailureKind, message: str, error: BaseException | None = None) -> "Outcome[T]":
        return cls(failure=Failure(kind, message, error))

    @property
    def ok(self) -> bool:
        return self.failure is None

    def unwrap(self) -> T:
        """Return the value or raise the exception matching the failure kind."""
        if self.failure is not None:
            raise self.failure.to_exception()
        return self.value  # type: ignore[return-value]

    def value_or(self, default: U) -> T | U:
        if self.failure is not None or self.value is None:
            return default
        return self.value

    def map(self, fn: Callable[[T], U]) -> "Outcome[U]":
        if self.failure is not None:
            return Outcome(failure=self.failure)
        return Outcome(value=fn(self.value))  # type: ignore[arg-type]


__all__ = ["Failure", "FailureKind", "Outcome"]
