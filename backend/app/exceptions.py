"""
Error taxonomy for the safety tracking layer.

None of these are fatal: validation errors drop a single record,
transport errors keep the last known good view, and not-found resolves
to an "unknown" status.
"""

from typing import Optional


class SafetyError(Exception):
    """Base class for all safety tracking errors."""


class ValidationError(SafetyError):
    """A raw location record could not be turned into a snapshot."""


class InvalidCoordinate(ValidationError):
    """Latitude/longitude missing, non-numeric or out of range."""


class MalformedTimestamp(ValidationError):
    """Timestamp missing or not parseable to an instant."""


class TransportError(SafetyError):
    """Fetching from the upstream safety API failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(SafetyError):
    """The upstream has no data for the requested subject."""

    def __init__(self, subject_id: str):
        super().__init__(f"No safety data for subject {subject_id!r}")
        self.subject_id = subject_id
