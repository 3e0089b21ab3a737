"""
Decision Engine - Routes incoming findings.

Responsibilities:
- Drop findings that are not data classification findings
- Drop findings below the configured severity threshold
- Pick automatic or manual remediation from the per-type policy
"""

from collections.abc import Mapping

import structlog

from dlp_remediator.models import (
    Decision,
    Finding,
    RemediationAction,
    SeverityThreshold,
)

logger = structlog.get_logger(__name__)


class DecisionEngine:
    """
    Classifies a finding as SKIP, AUTO or MANUAL.

    Pure function of the finding plus two configuration values: the
    remediation policy and the minimum severity threshold.
    """

    def __init__(
        self,
        policy: Mapping[str, RemediationAction],
        threshold: SeverityThreshold,
    ) -> None:
        """
        Initialize decision engine.

        Args:
            policy: Finding type -> remediation action. Missing types are MANUAL.
            threshold: Minimum severity level
        """
        self._policy = dict(policy)
        self._threshold = SeverityThreshold(threshold)
        self._logger = logger.bind(component="decision_engine")

    @property
    def threshold(self) -> SeverityThreshold:
        return self._threshold

    def passes_threshold(self, score: int | None) -> bool:
        """
        Check a severity score against the configured threshold.

        The comparison is intentionally not a clean three-level ordering:
        MEDIUM and HIGH filter identically for scores >= 3. Findings without
        a score are not filtered.
        """
        if score is None:
            return True
        if score < 2 and self._threshold != SeverityThreshold.LOW:
            return False
        if score < 3 and self._threshold == SeverityThreshold.HIGH:
            return False
        return True

    def is_eligible(self, finding: Finding) -> bool:
        """A finding is eligible iff it is a classification finding above threshold."""
        return finding.is_classification and self.passes_threshold(finding.severity.score)

    def action_for(self, finding_type: str | None) -> RemediationAction:
        """Look up the remediation action for a finding type."""
        if finding_type and self._policy.get(finding_type) == RemediationAction.AUTO:
            return RemediationAction.AUTO
        return RemediationAction.MANUAL

    def decide(self, finding: Finding) -> Decision:
        """
        Determine the remediation path for a finding.

        Args:
            finding: The finding to classify

        Returns:
            SKIP, AUTO or MANUAL
        """
        if not finding.is_classification:
            self._logger.info(
                "finding_skipped",
                finding_id=finding.id,
                reason="not_classification",
                category=finding.category,
            )
            return Decision.SKIP

        if not self.passes_threshold(finding.severity.score):
            self._logger.info(
                "finding_skipped",
                finding_id=finding.id,
                reason="below_threshold",
                score=finding.severity.score,
                threshold=self._threshold.value,
            )
            return Decision.SKIP

        if self.action_for(finding.type) == RemediationAction.AUTO:
            return Decision.AUTO
        return Decision.MANUAL
