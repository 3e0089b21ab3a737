"""
API module.

Provides FastAPI routes for the triage, approval and remediation stages.
"""

from dlp_remediator.api.routes import findings_router, remediation_router, slack_router

__all__ = ["findings_router", "slack_router", "remediation_router"]
