"""
Webhook payload models for the PRThreads cog.

Each model is an immutable snapshot of what GitHub sent with a single event.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional


class MalformedPayloadError(ValueError):
    """Raised when a webhook payload lacks the fields a snapshot needs."""


class ThreadAction(enum.Enum):
    """Thread-level actions the synchronizer knows how to apply."""

    OPENED = "opened"
    CLOSED = "closed"
    REOPENED = "reopened"
    SYNCHRONIZE = "synchronize"
    REVIEW_REQUESTED = "review_requested"
    REVIEW_SUBMITTED = "review_submitted"


def _require(data: Any, key: str, kind: str, types: Any = None) -> Any:
    if not isinstance(data, dict):
        raise MalformedPayloadError(f"{kind} payload must be an object")
    try:
        value = data[key]
    except KeyError:
        raise MalformedPayloadError(f"{kind} payload is missing '{key}'") from None
    if types is not None and not isinstance(value, types):
        raise MalformedPayloadError(f"{kind} '{key}' has the wrong type: {type(value).__name__}")
    return value


def _optional(data: Dict[str, Any], key: str, kind: str, types: Any) -> Any:
    value = data.get(key)
    if value is not None and not isinstance(value, types):
        raise MalformedPayloadError(f"{kind} '{key}' has the wrong type: {type(value).__name__}")
    return value


@dataclass(frozen=True)
class GitHubUser:
    login: str
    id: Optional[int] = None
    avatar_url: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "GitHubUser":
        return cls(
            login=_require(data, "login", "user", str),
            id=data.get("id"),
            avatar_url=data.get("avatar_url"),
            url=data.get("url"),
        )

    @classmethod
    def optional(cls, data: Any) -> Optional["GitHubUser"]:
        """Parse a user that GitHub may omit or send as null."""
        if not data:
            return None
        return cls.from_payload(data)


@dataclass(frozen=True)
class Review:
    id: int
    user: GitHubUser
    state: str
    body: Optional[str] = None
    submitted_at: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Review":
        return cls(
            id=_require(data, "id", "review", int),
            user=GitHubUser.from_payload(_require(data, "user", "review")),
            # GitHub sends review states in lowercase on webhooks, uppercase on the REST API
            state=_require(data, "state", "review", str).lower(),
            body=_optional(data, "body", "review", str),
            submitted_at=data.get("submitted_at"),
        )


@dataclass(frozen=True)
class PullRequest:
    id: int
    number: int
    title: str
    html_url: str
    user: GitHubUser
    state: str = "open"
    body: Optional[str] = None
    merged: bool = False
    merged_by: Optional[GitHubUser] = None
    closed_by: Optional[GitHubUser] = None
    requested_reviewer: Optional[GitHubUser] = None
    review: Optional[Review] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "PullRequest":
        """
        Build a snapshot from the ``pull_request`` object of a webhook payload.

        Raises:
            MalformedPayloadError: if an identity field or the author is missing,
                or a field GitHub always sends as a string or number has another type
        """
        return cls(
            id=_require(data, "id", "pull_request", int),
            number=_require(data, "number", "pull_request", int),
            title=_require(data, "title", "pull_request", str),
            html_url=_require(data, "html_url", "pull_request", str),
            user=GitHubUser.from_payload(_require(data, "user", "pull_request")),
            state=_optional(data, "state", "pull_request", str) or "open",
            body=_optional(data, "body", "pull_request", str),
            merged=bool(data.get("merged")),
            merged_by=GitHubUser.optional(data.get("merged_by")),
            closed_by=GitHubUser.optional(data.get("closed_by")),
        )

    def with_review(self, review: Review) -> "PullRequest":
        return replace(self, review=review)

    def with_requested_reviewer(self, reviewer: Optional[GitHubUser]) -> "PullRequest":
        return replace(self, requested_reviewer=reviewer)


@dataclass(frozen=True)
class ThreadRecord:
    thread_id: int
    pr_number: int

    def to_dict(self) -> Dict[str, int]:
        return {"thread_id": self.thread_id, "pr_number": self.pr_number}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ThreadRecord":
        return cls(thread_id=int(data["thread_id"]), pr_number=int(data["pr_number"]))
