"""
Error hierarchy for the recommendation core.

Math primitives (cosine, jaccard, decay) never raise; they return 0 or a
floor value. These exceptions are reserved for request-level problems
that a caller has to handle.
"""

from typing import Optional


class RecommendationError(Exception):
    """Base class for all recommendation-core errors."""

    code: str = "recommendation_error"

    def __init__(self, message: str, *, code: Optional[str] = None):
        super().__init__(message)
        if code is not None:
            self.code = code


class ValidationError(RecommendationError):
    """Raised when a request is missing data a scoring mode requires."""

    code = "validation_error"


class NotFoundError(RecommendationError):
    """Raised for an unknown item or test id."""

    code = "not_found"


class ConfigurationError(RecommendationError):
    """Raised when weights don't sum to 1.0 or a variant is unknown."""

    code = "configuration_error"


class DependencyError(RecommendationError):
    """Raised when an external collaborator (catalog, store) is unavailable."""

    code = "dependency_unavailable"
