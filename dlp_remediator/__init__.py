"""
DLP Remediation Service

Triages sensitive-data findings, asks for human approval in Slack when
policy requires it, and quarantines the exposed objects.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
