"""Error taxonomy for the governance controls engine.

Only caller-facing failures are exceptions. Override conflicts are expected
outcomes and are returned as Conflict records, never raised.
"""


class GovernanceError(Exception):
    """Base class for all governance controls engine errors.

    Args:
        message: Human-readable description of the failure.
        field: Name of the offending input field, when one applies.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class NotFoundError(GovernanceError):
    """A referenced environment or control does not exist."""


class ValidationError(GovernanceError):
    """A control or environment definition is malformed."""
