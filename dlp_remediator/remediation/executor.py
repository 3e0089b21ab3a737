"""
Remediation Executor - Quarantines exposed objects.

Responsibilities:
- Copy the offending object into the quarantine bucket
- Delete it from its original location
- Classify the result as success, partial failure or failure
- Report the outcome back to chat
"""

import structlog

from dlp_remediator.clients.object_store import ObjectStore
from dlp_remediator.exceptions import (
    PartialRemediationError,
    RemediationError,
    TransientDependencyError,
)
from dlp_remediator.hitl.message_composer import NotificationComposer
from dlp_remediator.hitl.slack_notifier import SlackNotifier
from dlp_remediator.models import (
    RemediationOutcome,
    RemediationRequest,
    RemediationStatus,
)

logger = structlog.get_logger(__name__)


def quarantine_key_for(bucket: str, key: str) -> str:
    """Quarantine key preserving the object's provenance."""
    return f"{bucket}/{key}"


class RemediationExecutor:
    """
    Moves objects into quarantine with copy-then-delete.

    The two steps are not transactional. A failed copy leaves the original
    untouched and fails the run. A failed delete after a good copy leaves
    two copies and is reported as a partial failure. Neither case is rolled
    back or retried here; re-running the whole quarantine is safe because
    the copy overwrites and deleting a missing key is a no-op.
    """

    def __init__(
        self,
        store: ObjectStore,
        quarantine_bucket: str,
        composer: NotificationComposer | None = None,
        notifier: SlackNotifier | None = None,
    ) -> None:
        """
        Initialize remediation executor.

        Args:
            store: Object storage adapter
            quarantine_bucket: Restricted bucket receiving quarantined objects
            composer: Renders outcome reports (required for execute())
            notifier: Delivers outcome reports (required for execute())
        """
        self._store = store
        self._quarantine_bucket = quarantine_bucket
        self._composer = composer
        self._notifier = notifier
        self._logger = logger.bind(component="remediation_executor")

    async def quarantine(self, bucket: str, key: str) -> RemediationOutcome:
        """
        Quarantine a single object.

        Args:
            bucket: Bucket holding the exposed object
            key: Key of the exposed object

        Returns:
            RemediationOutcome describing which steps completed
        """
        quarantine_key = quarantine_key_for(bucket, key)
        outcome = {
            "source_bucket": bucket,
            "source_key": key,
            "quarantine_bucket": self._quarantine_bucket,
            "quarantine_key": quarantine_key,
        }

        self._logger.info(
            "quarantine_started",
            source=f"{bucket}/{key}",
            destination=f"{self._quarantine_bucket}/{quarantine_key}",
        )

        try:
            await self._store.copy_object(bucket, key, self._quarantine_bucket, quarantine_key)
        except Exception as e:
            self._logger.error("quarantine_copy_failed", source=f"{bucket}/{key}", error=str(e))
            return RemediationOutcome(
                status=RemediationStatus.FAILURE,
                error=f"copy failed: {e}",
                **outcome,
            )

        try:
            await self._store.delete_object(bucket, key)
        except Exception as e:
            self._logger.error(
                "quarantine_partial_failure",
                source=f"{bucket}/{key}",
                quarantine_key=quarantine_key,
                error=str(e),
            )
            return RemediationOutcome(
                status=RemediationStatus.PARTIAL_FAILURE,
                copied=True,
                error=f"delete failed: {e}",
                **outcome,
            )

        self._logger.info("quarantine_completed", source=f"{bucket}/{key}")
        return RemediationOutcome(
            status=RemediationStatus.SUCCESS,
            copied=True,
            deleted=True,
            **outcome,
        )

    async def execute(self, request: RemediationRequest) -> RemediationOutcome:
        """
        Run the remediation stage for one request.

        Quarantines the finding's object and reports the outcome to the
        approval thread (human-approved runs) or the default webhook.
        Reporting failures are logged, never raised.

        Args:
            request: Finding plus optional approval context

        Returns:
            RemediationOutcome
        """
        if self._composer is None or self._notifier is None:
            raise RemediationError("execute() requires a composer and a notifier")

        finding = request.finding
        approval = request.approval

        self._logger.info(
            "remediation_started",
            finding_id=finding.id,
            manual=request.is_manual,
            approver=approval.username if approval else None,
        )

        if finding.has_object:
            outcome = await self.quarantine(finding.bucket, finding.object_key)
        else:
            self._logger.error("remediation_target_missing", finding_id=finding.id, category=finding.category)
            outcome = RemediationOutcome(
                status=RemediationStatus.FAILURE,
                source_bucket=finding.bucket,
                source_key=finding.object_key,
                quarantine_bucket=self._quarantine_bucket,
                quarantine_key="",
                error="finding does not identify an S3 object",
            )

        try:
            message = self._composer.compose_outcome_report(finding, outcome, approval)
            delivery = await self._notifier.send(
                message, url=approval.response_url if approval else None
            )
            if not delivery.ok:
                self._logger.error(
                    "outcome_report_not_delivered",
                    finding_id=finding.id,
                    error=delivery.error,
                )
        except Exception as e:
            self._logger.error("outcome_report_failed", finding_id=finding.id, error=str(e))

        self._logger.info(
            "remediation_finished",
            finding_id=finding.id,
            status=outcome.status.value,
            requires_attention=outcome.requires_attention,
        )
        return outcome


def raise_for_outcome(outcome: RemediationOutcome) -> RemediationOutcome:
    """
    Turn a non-successful outcome into an exception.

    Raises:
        PartialRemediationError: Object copied but not deleted
        TransientDependencyError: Copy failed, nothing changed
    """
    if outcome.status == RemediationStatus.PARTIAL_FAILURE:
        raise PartialRemediationError(outcome)
    if outcome.status == RemediationStatus.FAILURE:
        raise TransientDependencyError(outcome.error or "quarantine failed", dependency="s3")
    return outcome
