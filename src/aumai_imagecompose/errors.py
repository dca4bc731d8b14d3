"""Exceptions raised while resolving image kinds and building manifests."""

from __future__ import annotations

__all__ = [
    "ImageComposeError",
    "NotFoundError",
    "UnsupportedCustomizationError",
    "MissingRequiredInputError",
    "InvalidImageOptionsError",
    "PathValidationError",
    "StructuralError",
    "FeatureUnsupportedError",
    "SizeError",
]


class ImageComposeError(Exception):
    """Base exception for every error surfaced to callers."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ImageComposeError):
    """Raised when a distribution, architecture or image kind is unknown."""


class UnsupportedCustomizationError(ImageComposeError):
    """Raised when a customization is requested against a kind that forbids it."""


class MissingRequiredInputError(ImageComposeError):
    """Raised when a kind needs an input (OSTree URL, install device) that is absent."""


class InvalidImageOptionsError(ImageComposeError):
    """Raised when image options are present but malformed."""


class PathValidationError(ImageComposeError):
    """
    Aggregate of every mount-point violation found in one blueprint.

    ``violations`` keeps one line per offending path, in input order.
    """

    HEADER = "The following errors occurred while setting up custom mountpoints:"

    def __init__(self, violations: list[str]) -> None:
        self.violations = list(violations)
        super().__init__("\n".join([self.HEADER, *self.violations]))


class StructuralError(ImageComposeError):
    """Raised for a malformed disk or filesystem customization."""


class FeatureUnsupportedError(ImageComposeError):
    """Raised when a feature is unavailable on the platform and architecture."""


class SizeError(ImageComposeError):
    """Raised when a reserved mount point is requested below its minimum size."""
