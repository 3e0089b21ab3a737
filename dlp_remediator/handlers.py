"""
Serverless entry points, one per pipeline stage.

Each handler is stateless: it builds its components from settings, runs a
single unit of work and returns. No handler lets an exception escape to
the invoking transport.
"""

import asyncio
import base64
import binascii
from typing import Any

import structlog

from dlp_remediator.config import get_settings
from dlp_remediator.hitl.approval_gateway import GatewayResponse
from dlp_remediator.logging_config import (
    clear_context,
    set_correlation_id,
    set_finding_id,
    set_stage,
    setup_logging,
)
from dlp_remediator.models import RemediationRequest
from dlp_remediator.service import Services, build_services

logger = structlog.get_logger(__name__)

_services: Services | None = None


def _get_services() -> Services:
    # Built once per warm container
    global _services
    if _services is None:
        settings = get_settings()
        setup_logging(settings)
        _services = build_services(settings)
    return _services


def _begin(stage: str, context: Any) -> None:
    # Warm containers reuse the thread, so context from the previous event must go
    clear_context()
    set_correlation_id(getattr(context, "aws_request_id", None))
    set_stage(stage)


def finding_handler(event: dict[str, Any], context: Any = None) -> None:
    """Triage stage: triggered by finding events."""
    services = _get_services()
    _begin("triage", context)
    asyncio.run(services.run(services.dispatcher.handle_event(event)))


def approval_handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """Approval stage: API Gateway proxy integration for chat button clicks."""
    services = _get_services()
    _begin("approval", context)

    raw_body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        try:
            raw_body = base64.b64decode(raw_body, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            logger.warning("approval_body_undecodable", error=str(e))
            return GatewayResponse(400, {"text": "Error: Malformed request"}).to_api_gateway()
    headers = event.get("headers") or {}

    response = asyncio.run(services.run(services.gateway.handle(headers, raw_body)))
    return response.to_api_gateway()


def remediator_handler(event: dict[str, Any], context: Any = None) -> dict[str, Any] | None:
    """Remediation stage: invoked asynchronously with a RemediationRequest payload."""
    services = _get_services()
    _begin("remediation", context)

    try:
        request = RemediationRequest.model_validate(event)
        set_finding_id(request.finding.id)
        outcome = asyncio.run(services.executor.execute(request))
    except Exception as e:
        logger.error("remediation_stage_failed", error=str(e), exc_info=e)
        return None

    return outcome.model_dump(mode="json")
