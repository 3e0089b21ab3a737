"""
Dispatcher - Acts on DecisionEngine output for incoming finding events.

AUTO findings go straight to the remediation stage; MANUAL findings become
an approval request in chat; SKIP findings are dropped quietly.
"""

from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from dlp_remediator.clients.invoker import StageInvoker
from dlp_remediator.hitl.message_composer import NotificationComposer
from dlp_remediator.hitl.slack_notifier import SlackNotifier
from dlp_remediator.logging_config import set_finding_id
from dlp_remediator.models import Decision, Finding, RemediationRequest
from dlp_remediator.triage.decision_engine import DecisionEngine

logger = structlog.get_logger(__name__)


def finding_from_event(event: dict[str, Any]) -> Finding:
    """Extract the finding from an EventBridge envelope or a bare finding record."""
    detail = event.get("detail", event)
    return Finding.model_validate(detail)


class Dispatcher:
    """Routes triaged findings to execution or to a human."""

    def __init__(
        self,
        engine: DecisionEngine,
        invoker: StageInvoker,
        composer: NotificationComposer,
        notifier: SlackNotifier,
    ) -> None:
        self._engine = engine
        self._invoker = invoker
        self._composer = composer
        self._notifier = notifier
        self._logger = logger.bind(component="dispatcher")

    async def dispatch(self, finding: Finding) -> Decision:
        """
        Decide and act on a single finding.

        Notification problems on the manual path are logged and the event is
        dropped. Failures invoking the remediation stage propagate.

        Returns:
            The decision taken
        """
        decision = self._engine.decide(finding)

        if decision == Decision.AUTO:
            self._logger.info("auto_remediating_finding", finding_id=finding.id, type=finding.type)
            await self._invoker.invoke(RemediationRequest(finding=finding))

        elif decision == Decision.MANUAL:
            await self._request_approval(finding)

        return decision

    async def _request_approval(self, finding: Finding) -> None:
        try:
            message = self._composer.compose_approval_request(finding)
            delivery = await self._notifier.send(message)
        except Exception as e:
            self._logger.error("approval_request_failed", finding_id=finding.id, error=str(e))
            return

        if delivery.ok:
            self._logger.info("approval_request_sent", finding_id=finding.id, type=finding.type)
        else:
            self._logger.error(
                "approval_request_not_delivered",
                finding_id=finding.id,
                status_code=delivery.status_code,
                error=delivery.error,
            )

    async def handle_event(self, event: dict[str, Any]) -> Decision | None:
        """
        Triage stage entry point.

        Never raises: malformed events and dispatch failures are logged so
        the transport does not redeliver and duplicate side effects.

        Returns:
            The decision, or None if the event could not be processed
        """
        try:
            finding = finding_from_event(event)
        except PydanticValidationError as e:
            self._logger.error("finding_event_malformed", error=str(e))
            return None

        set_finding_id(finding.id)
        try:
            return await self.dispatch(finding)
        except Exception as e:
            self._logger.error("finding_dispatch_failed", finding_id=finding.id, error=str(e), exc_info=e)
            return None
