"""
Remediation stage.

Quarantines exposed objects and reports the outcome.
"""

from dlp_remediator.remediation.executor import (
    RemediationExecutor,
    quarantine_key_for,
    raise_for_outcome,
)

__all__ = [
    "RemediationExecutor",
    "quarantine_key_for",
    "raise_for_outcome",
]
