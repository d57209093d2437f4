"""GitHub webhook handling for the triage gate.

This module parses issues.opened and pull_request.opened (and
pull_request_target.opened) deliveries into ArtifactEvent objects.
"""

from .handler import SUPPORTED_EVENTS, WebhookHandler
from .models import ArtifactAction, ArtifactEvent

__all__ = [
    "ArtifactAction",
    "ArtifactEvent",
    "SUPPORTED_EVENTS",
    "WebhookHandler",
]
