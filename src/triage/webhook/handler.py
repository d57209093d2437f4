"""GitHub webhook parsing for the triage gate.

The X-GitHub-Event header names the event; the payload key holding the
artifact depends on it:

- issues: payload["issue"]
- pull_request, pull_request_target: payload["pull_request"]

Both artifact objects share the fields the gate reads:
{
  "action": "opened",
  "issue" | "pull_request": {
    "number": 123,
    "title": "Title",
    "body": "Body or null",
    "user": {"login": "author"}
  },
  "repository": {
    "name": "repo-name",
    "owner": {"login": "owner-name"}
  }
}

Signature validation happens upstream (ingress or event listener).
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from src.triage.pipeline.models import ArtifactKind
from src.triage.webhook.models import ArtifactAction, ArtifactEvent


logger = logging.getLogger(__name__)


# X-GitHub-Event value -> (artifact kind, payload key)
SUPPORTED_EVENTS: Dict[str, tuple[ArtifactKind, str]] = {
    "issues": (ArtifactKind.ISSUE, "issue"),
    "pull_request": (ArtifactKind.PULL_REQUEST, "pull_request"),
    "pull_request_target": (ArtifactKind.PULL_REQUEST, "pull_request"),
}


class WebhookHandler:
    """Parses GitHub webhook payloads into ArtifactEvent objects.

    Parsing is fast and side-effect free so the HTTP handler can
    acknowledge the delivery immediately.
    """

    def parse_event(
        self,
        event_name: Optional[str],
        payload: Any,
    ) -> Optional[ArtifactEvent]:
        """Parse an issue or pull request webhook.

        Args:
            event_name: Value of the X-GitHub-Event header.
            payload: The decoded JSON payload.

        Returns:
            ArtifactEvent, or None for unsupported events, actions other
            than opened, and malformed payloads.
        """
        if event_name not in SUPPORTED_EVENTS:
            logger.debug("Ignoring unsupported event type: %s", event_name)
            return None

        if not isinstance(payload, dict):
            logger.warning("Invalid payload: expected dict, got %s", type(payload))
            return None

        action = self._parse_action(payload.get("action"))
        if action is None:
            logger.debug(
                "Ignoring unsupported action: %s %s",
                event_name,
                payload.get("action"),
            )
            return None

        kind, key = SUPPORTED_EVENTS[event_name]
        artifact = payload.get(key)
        if not isinstance(artifact, dict):
            logger.warning(
                "Missing or invalid '%s' field in payload: %s",
                key,
                type(artifact),
            )
            return None

        repo_data = payload.get("repository")
        if not isinstance(repo_data, dict):
            logger.warning(
                "Missing or invalid 'repository' field in payload: %s",
                type(repo_data),
            )
            return None

        author = self._extract_login(artifact.get("user"), f"{key} author")
        owner = self._extract_login(repo_data.get("owner"), "repository owner")
        if author is None or owner is None:
            return None

        body = artifact.get("body")
        if not isinstance(body, str):
            body = ""

        title = artifact.get("title")
        repo_name = repo_data.get("name")

        try:
            event = ArtifactEvent(
                kind=kind,
                action=action,
                number=artifact.get("number"),
                title=title.strip() if isinstance(title, str) else title,
                body=body,
                author=author,
                repository=repo_name.strip() if isinstance(repo_name, str) else repo_name,
                owner=owner,
            )
        except ValidationError as e:
            logger.warning(
                "Invalid %s payload: %s",
                event_name,
                e.errors(include_url=False),
            )
            return None

        logger.info(
            "Parsed %s event: action=%s, artifact=%s",
            event_name,
            action.value,
            event.artifact_id,
        )
        return event

    def _parse_action(self, action: Any) -> Optional[ArtifactAction]:
        if not isinstance(action, str):
            return None
        try:
            return ArtifactAction(action)
        except ValueError:
            return None

    def _extract_login(self, user_data: Any, context: str) -> Optional[str]:
        if not isinstance(user_data, dict):
            logger.warning(
                "Missing or invalid %s data: %s",
                context,
                type(user_data),
            )
            return None

        login = user_data.get("login")
        if not isinstance(login, str) or not login.strip():
            logger.warning("Invalid or empty %s login: %s", context, login)
            return None

        return login.strip()
