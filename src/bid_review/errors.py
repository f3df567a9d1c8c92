"""Errors that cross the review core's boundary."""

from __future__ import annotations


class ReviewError(Exception):
    """Base class for fatal review failures."""


class ConfigurationError(ReviewError):
    """Raised before any network call when required configuration is missing."""


class TransportError(ReviewError):
    """Raised when the reasoning service call does not succeed.

    `status_code` is None when no response was received at all.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        model: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.model = model
