"""
Error taxonomy for the remediation workflow.

Each stage catches these at its outer boundary; none of them is allowed to
escape to the invoking transport.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dlp_remediator.models import RemediationOutcome


class RemediationError(Exception):
    """Base class for all workflow errors."""


class ValidationError(RemediationError):
    """Malformed or ineligible finding or callback. No remediation attempted."""


class AuthenticationError(RemediationError):
    """Callback signature or timestamp check failed."""


class TransientDependencyError(RemediationError):
    """A call to object storage, the findings source, the invoker or chat failed."""

    def __init__(self, message: str, *, dependency: str = "unknown") -> None:
        super().__init__(message)
        self.dependency = dependency


class PartialRemediationError(RemediationError):
    """The object was copied into quarantine but not removed from its origin."""

    def __init__(self, outcome: "RemediationOutcome") -> None:
        super().__init__(
            f"Object {outcome.source_bucket}/{outcome.source_key} copied to "
            f"{outcome.quarantine_location} but not deleted: {outcome.error}"
        )
        self.outcome = outcome
