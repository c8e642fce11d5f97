from __future__ import annotations

import enum
import logging
from typing import Any, Dict, Optional

from .models import GitHubUser, MalformedPayloadError, PullRequest, Review, ThreadAction
from .synchronizer import ThreadSynchronizer

log = logging.getLogger("red.prthreads.router")

PULL_REQUEST = "pull_request"
PULL_REQUEST_REVIEW = "pull_request_review"
PULL_REQUEST_REVIEW_REQUEST = "pull_request_review_request"

PR_UPDATE_ACTIONS = {
    "closed": ThreadAction.CLOSED,
    "reopened": ThreadAction.REOPENED,
    "synchronize": ThreadAction.SYNCHRONIZE,
}


class RouteOutcome(enum.Enum):
    IGNORED = "ignored"
    SYNCED = "synced"
    FAILED = "failed"


def classify(event_type: Optional[str], action: Optional[str]) -> Optional[ThreadAction]:
    """Map a GitHub event/action pair to a thread action, or None if unsupported."""
    if event_type == PULL_REQUEST:
        if action == "opened":
            return ThreadAction.OPENED
        return PR_UPDATE_ACTIONS.get(action or "")
    if event_type == PULL_REQUEST_REVIEW:
        return ThreadAction.REVIEW_SUBMITTED
    if event_type == PULL_REQUEST_REVIEW_REQUEST:
        return ThreadAction.REVIEW_REQUESTED
    return None


class EventRouter:
    """Entry point for verified webhook payloads."""

    def __init__(self, synchronizer: ThreadSynchronizer) -> None:
        self.synchronizer = synchronizer

    async def route(self, event_type: Optional[str], payload: Dict[str, Any]) -> RouteOutcome:
        if not isinstance(payload, dict):
            log.debug("Ignoring %s event with a non-object payload", event_type)
            return RouteOutcome.IGNORED
        action = payload.get("action")
        repository = payload.get("repository")
        repo = repository.get("full_name") if isinstance(repository, dict) else None
        log.info("Received %s event with action: %s for repo %s", event_type, action, repo or "unknown")

        if action is not None and not isinstance(action, str):
            log.warning("Ignoring %s event with a non-string action", event_type)
            return RouteOutcome.IGNORED

        thread_action = classify(event_type, action)
        if thread_action is None:
            log.debug("Ignoring %s/%s", event_type, action)
            return RouteOutcome.IGNORED

        try:
            pr = self._snapshot(thread_action, payload)
        except MalformedPayloadError as e:
            log.warning("Ignoring malformed %s payload: %s", event_type, e)
            return RouteOutcome.IGNORED

        if thread_action is ThreadAction.OPENED:
            thread = await self.synchronizer.create_thread(pr)
        else:
            thread = await self.synchronizer.update_thread(pr, thread_action)
        return RouteOutcome.SYNCED if thread is not None else RouteOutcome.FAILED

    @staticmethod
    def _snapshot(thread_action: ThreadAction, payload: Dict[str, Any]) -> PullRequest:
        pr_data = payload.get("pull_request")
        if not isinstance(pr_data, dict):
            raise MalformedPayloadError("payload has no pull_request object")
        pr = PullRequest.from_payload(pr_data)
        if thread_action is ThreadAction.REVIEW_SUBMITTED:
            review = payload.get("review")
            if review:
                pr = pr.with_review(Review.from_payload(review))
        elif thread_action is ThreadAction.REVIEW_REQUESTED:
            pr = pr.with_requested_reviewer(GitHubUser.optional(payload.get("requested_reviewer")))
        return pr
