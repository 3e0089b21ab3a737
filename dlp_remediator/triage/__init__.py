"""
Triage stage.

Decides what to do with an incoming finding and acts on the decision:
- DecisionEngine: SKIP / AUTO / MANUAL routing
- Dispatcher: direct remediation or an approval request in chat
"""

from dlp_remediator.triage.decision_engine import DecisionEngine
from dlp_remediator.triage.dispatcher import Dispatcher, finding_from_event

__all__ = [
    "DecisionEngine",
    "Dispatcher",
    "finding_from_event",
]
