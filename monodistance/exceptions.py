"""Custom exception classes for monodistance."""

from __future__ import annotations


class MonoDistanceError(Exception):
    """Base exception for all monodistance errors."""

    pass


class ConfigError(MonoDistanceError):
    """Raised when decoder, tracker or pipeline configuration is invalid."""

    pass


class InvalidTensorError(MonoDistanceError, ValueError):
    """Raised when a detection tensor does not match the expected shape.

    This is fatal for the frame being decoded; no partial result is produced.
    """

    def __init__(self, message: str, expected: int | None = None, actual: int | None = None):
        self.expected = expected
        self.actual = actual
        super().__init__(message)
