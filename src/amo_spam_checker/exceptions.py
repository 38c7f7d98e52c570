"""Exceptions raised by the spam checker pipeline."""

from __future__ import annotations


class SpamCheckerError(Exception):
    """Base class for all errors raised by this package."""


class ClassificationError(SpamCheckerError):
    """The SpravPortal lookup failed, timed out, or returned a non-2xx status."""


class CRMError(SpamCheckerError):
    """An amoCRM API call failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
