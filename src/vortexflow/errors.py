"""Structured error hierarchy for vortexflow.

All library errors inherit from VortexFlowError, enabling uniform catch-all
handling while allowing callers to react to specific data-quality failures.
"""

from typing import Any, Dict, Optional


class VortexFlowError(Exception):
    """Base exception for all vortexflow errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class InvalidInputFormat(VortexFlowError):
    """Price payload is missing, not list-shaped, or holds an unusable price."""
    pass


class NonMonotonicTimestamp(VortexFlowError):
    """A timestamp is less than or equal to its predecessor."""

    def __init__(self, index: int, previous: int, current: int):
        super().__init__(
            f"Timestamp at index {index} ({current}) is not after "
            f"the previous timestamp ({previous})",
            details={"index": index, "previous": previous, "current": current},
        )
        self.index = index
        self.previous = previous
        self.current = current


class InvalidConfiguration(VortexFlowError):
    """Strategy configuration field is out of range or malformed."""
    pass
