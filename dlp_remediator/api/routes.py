"""
FastAPI routes for the three pipeline stages.

Provides REST API endpoints for:
- Finding event intake (triage)
- Slack interactive callbacks (approval)
- Direct remediation runs (execution)
"""

from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from dlp_remediator.logging_config import set_finding_id, set_stage
from dlp_remediator.models import Decision, RemediationOutcome, RemediationRequest
from dlp_remediator.service import Services

logger = structlog.get_logger(__name__)

findings_router = APIRouter(prefix="/api/v1/findings", tags=["Triage"])
slack_router = APIRouter(prefix="/api/v1/slack", tags=["Approvals"])
remediation_router = APIRouter(prefix="/api/v1/remediations", tags=["Remediation"])


# ==================== Response Models ====================

class TriageResponse(BaseModel):
    """Response for a triaged finding event."""

    accepted: bool
    decision: Decision | None


def get_services(request: Request) -> Services:
    services: Services | None = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Services not initialised")
    return services


# ==================== Triage ====================

@findings_router.post("", response_model=TriageResponse)
async def receive_finding(request: Request, event: dict[str, Any]) -> TriageResponse:
    """Triage a finding event (EventBridge envelope or bare finding)."""
    set_stage("triage")
    services = get_services(request)
    decision = await services.dispatcher.handle_event(event)
    return TriageResponse(accepted=decision is not None, decision=decision)


# ==================== Approval ====================

@slack_router.post("/actions")
async def slack_action(request: Request) -> JSONResponse:
    """
    Handle a "Remediate" button click.

    The raw body is read before any form parsing so the signature is checked
    against the exact bytes Slack signed.
    """
    set_stage("approval")
    services = get_services(request)
    raw_body = (await request.body()).decode("utf-8")

    response = await services.gateway.handle(dict(request.headers), raw_body)
    return JSONResponse(status_code=response.status_code, content=response.body)


# ==================== Remediation ====================

@remediation_router.post("", response_model=RemediationOutcome)
async def run_remediation(request: Request, payload: RemediationRequest) -> RemediationOutcome:
    """Run the remediation stage synchronously and return its outcome."""
    set_stage("remediation")
    set_finding_id(payload.finding.id)
    services = get_services(request)
    return await services.executor.execute(payload)
