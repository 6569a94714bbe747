"""Custom exception hierarchy for roomfinish."""

from __future__ import annotations


class RoomFinishError(Exception):
    """Base exception for all roomfinish-specific errors."""

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(RoomFinishError):
    """Raised when configuration is invalid or missing."""
    pass


class MissingConfigurationError(ConfigurationError):
    """Raised when a mapped output field does not exist on a room."""
    pass


class GeometryError(RoomFinishError):
    """Raised when geometry operations fail."""
    pass


class GeometryExtractionError(GeometryError):
    """Raised when boundary loops, room solids or element geometry cannot be computed."""
    pass


class BooleanOperationError(GeometryError):
    """Raised when a solid boolean operation fails."""
    pass


class DimensionResolutionError(RoomFinishError):
    """Raised when no usable width/height can be found for an opening."""
    pass


class DocumentError(RoomFinishError):
    """Base class for model document errors."""
    pass


class RoomEnumerationError(DocumentError):
    """Raised when the rooms of a document cannot be enumerated."""
    pass


class ModelLoadError(DocumentError):
    """Raised when a model file cannot be read into a document."""
    pass


class RecomputeError(RoomFinishError):
    """Raised when a whole recompute fails and no result set is produced."""
    pass
