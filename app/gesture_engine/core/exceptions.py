"""
Custom exceptions for the gesture engine.
"""


class GestureEngineError(Exception):
    """Base error of the gesture engine."""
    pass


class InvalidInputError(GestureEngineError):
    """Empty sequence, missing reference joint, zero weight vector, bad state."""
    pass


class TemplateFormatError(InvalidInputError):
    """A single template entry could not be parsed."""
    pass


class NotFoundError(GestureEngineError):
    """Template or label absent."""
    pass


class ResourceUnavailableError(GestureEngineError):
    """Template source unreachable."""
    pass


class ConcurrentOperationRejectedError(GestureEngineError):
    """A match is already in flight."""
    pass
