"""
Human-in-the-Loop (HITL) module.

Provides the Slack approval flow for remediations that policy does not
allow to run automatically.
"""

from dlp_remediator.hitl.approval_gateway import (
    ApprovalGateway,
    CallbackState,
    GatewayResponse,
    parse_callback_body,
)
from dlp_remediator.hitl.message_composer import NotificationComposer
from dlp_remediator.hitl.signature import SignatureVerifier, VerificationResult
from dlp_remediator.hitl.slack_notifier import DeliveryResult, SlackNotifier

__all__ = [
    "ApprovalGateway",
    "CallbackState",
    "GatewayResponse",
    "parse_callback_body",
    "NotificationComposer",
    "SignatureVerifier",
    "VerificationResult",
    "SlackNotifier",
    "DeliveryResult",
]
