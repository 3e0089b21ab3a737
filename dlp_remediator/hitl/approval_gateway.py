"""
Approval Gateway - Handles "Remediate" button clicks relayed from Slack.

A callback moves through:
    Received -> SignatureChecked -> FindingRevalidated -> Dispatched -> Responded

Any check that fails short-circuits straight to Responded. The gateway
acknowledges as soon as remediation has been dispatched; the outcome is
reported later by the remediation stage.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import parse_qs

import structlog

from dlp_remediator.clients.findings_source import FindingsSource
from dlp_remediator.clients.invoker import StageInvoker
from dlp_remediator.exceptions import ValidationError
from dlp_remediator.hitl.signature import SignatureVerifier, VerificationResult
from dlp_remediator.logging_config import set_finding_id
from dlp_remediator.models import ApprovalContext, RemediationRequest

logger = structlog.get_logger(__name__)


class CallbackState(str, Enum):
    """Progress of a single callback through the gateway."""

    RECEIVED = "received"
    SIGNATURE_CHECKED = "signature_checked"
    FINDING_REVALIDATED = "finding_revalidated"
    DISPATCHED = "dispatched"
    RESPONDED = "responded"


@dataclass
class GatewayResponse:
    """HTTP-style response returned to the chat platform."""

    status_code: int
    body: dict[str, Any]
    # Furthest state reached before responding
    reached: CallbackState = CallbackState.RECEIVED
    headers: dict[str, str] = field(default_factory=lambda: {"Content-Type": "application/json"})

    def to_api_gateway(self) -> dict[str, Any]:
        """Render as an API Gateway proxy response."""
        return {
            "statusCode": self.status_code,
            "headers": self.headers,
            "body": json.dumps(self.body),
        }


def parse_callback_body(raw_body: str) -> ApprovalContext:
    """
    Decode a URL-encoded interactive callback body.

    Raises:
        ValidationError: Body has no usable ``payload`` or action value
    """
    form = parse_qs(raw_body, keep_blank_values=True)
    values = form.get("payload")
    if not values:
        raise ValidationError("Callback body has no payload field")

    try:
        payload = json.loads(values[0])
        context = ApprovalContext.from_slack_payload(payload)
    except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
        raise ValidationError(f"Malformed callback payload: {e}") from e

    if not context.action_value:
        raise ValidationError("Callback action carries no finding reference")
    return context


class ApprovalGateway:
    """
    Validates approval callbacks and dispatches remediation.

    Trusts nothing in the callback beyond the finding id and the acting
    user: the finding itself is always re-fetched from the detection
    source and re-checked.
    """

    def __init__(
        self,
        verifier: SignatureVerifier,
        findings: FindingsSource,
        invoker: StageInvoker,
    ) -> None:
        self._verifier = verifier
        self._findings = findings
        self._invoker = invoker
        self._logger = logger.bind(component="approval_gateway")

    async def handle(
        self,
        headers: Mapping[str, str],
        raw_body: str,
        now: float | None = None,
    ) -> GatewayResponse:
        """
        Process one approval callback.

        Args:
            headers: Request headers carrying signature and timestamp
            raw_body: Body exactly as received
            now: Receipt time override (epoch seconds)

        Returns:
            GatewayResponse; never raises
        """
        try:
            return await self._handle(headers, raw_body, now)
        except Exception as e:
            self._logger.error("approval_callback_failed", error=str(e), exc_info=e)
            return GatewayResponse(500, {"text": "Error: unable to process request"})

    async def _handle(
        self,
        headers: Mapping[str, str],
        raw_body: str,
        now: float | None,
    ) -> GatewayResponse:
        # Received -> SignatureChecked
        result = self._verifier.verify(headers, raw_body, now=now)
        if result != VerificationResult.OK:
            self._logger.warning("approval_callback_rejected", reason=result.value)
            return GatewayResponse(
                401,
                {"text": "Error: request signature verification failed"},
            )

        try:
            approval = parse_callback_body(raw_body)
        except ValidationError as e:
            self._logger.warning("approval_callback_malformed", error=str(e))
            return GatewayResponse(
                400,
                {"text": "Error: Malformed request"},
                reached=CallbackState.SIGNATURE_CHECKED,
            )

        finding_id = approval.action_value
        set_finding_id(finding_id)

        # SignatureChecked -> FindingRevalidated
        finding = await self._findings.get_finding(finding_id)
        if finding is None:
            self._logger.error("approval_finding_not_found", finding_id=finding_id)
            return GatewayResponse(
                400,
                {"text": "Error: Finding not found"},
                reached=CallbackState.SIGNATURE_CHECKED,
            )

        if not finding.is_classification:
            self._logger.error(
                "approval_unsupported_category",
                finding_id=finding_id,
                category=finding.category,
            )
            return GatewayResponse(
                400,
                {"text": "Error: Remediation not supported for this finding type"},
                reached=CallbackState.SIGNATURE_CHECKED,
            )

        # FindingRevalidated -> Dispatched
        await self._invoker.invoke(RemediationRequest(finding=finding, approval=approval))

        self._logger.info(
            "approval_dispatched",
            finding_id=finding_id,
            approver=approval.username,
        )

        # Dispatched -> Responded
        return GatewayResponse(
            200,
            {"text": "request acknowledged"},
            reached=CallbackState.DISPATCHED,
        )
