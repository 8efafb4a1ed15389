"""Typed estimation errors.

Every error carries a ``kind`` discriminant and the HTTP status the API
layer should answer with, so callers branch on structure rather than on
message text.
"""

from __future__ import annotations

import enum


class EstimationErrorKind(str, enum.Enum):
    ENDPOINT_FAILURE = "endpoint_failure"
    ALL_SOURCES_FAILED = "all_sources_failed"
    ALREADY_REACHED = "already_reached"
    TARGET_IN_PAST = "target_in_past"
    TIMEOUT = "timeout"


class EstimationError(Exception):
    """Base class for all estimation failures."""

    kind: EstimationErrorKind
    status_code: int = 500


class EndpointFailureError(EstimationError):
    """Every URL of one source family failed.

    ``failures`` holds ``(url, message)`` pairs in the order they were tried.
    """

    kind = EstimationErrorKind.ENDPOINT_FAILURE
    status_code = 502

    def __init__(self, failures: list[tuple[str, str]]) -> None:
        self.failures = failures
        detail = ", ".join(f"{url}: {message}" for url, message in failures)
        super().__init__(f"All endpoints failed: {detail}")


class AllSourcesFailedError(EstimationError):
    """No source family produced a usable result."""

    kind = EstimationErrorKind.ALL_SOURCES_FAILED
    status_code = 503

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = errors
        super().__init__("All data sources failed. Please try again later.")


class AlreadyReachedError(EstimationError):
    """The target height is at or below the current chain height."""

    kind = EstimationErrorKind.ALREADY_REACHED
    status_code = 422

    def __init__(self, target_height: int, current_height: int) -> None:
        self.target_height = target_height
        self.current_height = current_height
        super().__init__(
            f"Target block {target_height} has already been reached. Current block is {current_height}."
        )


class TargetInPastError(EstimationError):
    """The requested target time is not in the future."""

    kind = EstimationErrorKind.TARGET_IN_PAST
    status_code = 422

    def __init__(self) -> None:
        super().__init__("Target time must be in the future.")


class EstimationTimeoutError(EstimationError):
    kind = EstimationErrorKind.TIMEOUT
    status_code = 504

    def __init__(self, seconds: float) -> None:
        self.seconds = seconds
        super().__init__(f"Estimation did not complete within {seconds:g}s")
