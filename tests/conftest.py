from __future__ import annotations

import itertools
from typing import Any, Dict, List, Optional, Tuple

import pytest


class FakeThread:
    def __init__(self, thread_id: int, name: str) -> None:
        self.id = thread_id
        self.name = name
        self.archived = False
        self.messages: List[str] = []


class FakeThreadClient:
    """In-memory stand-in for the Discord thread client."""

    def __init__(self) -> None:
        self.threads: Dict[int, FakeThread] = {}
        self.calls: List[Tuple[str, Any]] = []
        self._ids = itertools.count(1000)
        self.fail_create: Optional[Exception] = None
        self.fail_send: Optional[Exception] = None

    async def create(self, name: str) -> FakeThread:
        self.calls.append(("create", name))
        if self.fail_create is not None:
            raise self.fail_create
        thread = FakeThread(next(self._ids), name)
        self.threads[thread.id] = thread
        return thread

    async def fetch(self, thread_id: int) -> Optional[FakeThread]:
        self.calls.append(("fetch", thread_id))
        return self.threads.get(thread_id)

    async def send(self, thread: FakeThread, text: str) -> None:
        self.calls.append(("send", thread.id))
        if self.fail_send is not None:
            raise self.fail_send
        thread.archived = False
        thread.messages.append(text)

    async def set_archived(self, thread: FakeThread, archived: bool) -> None:
        self.calls.append(("set_archived", archived))
        thread.archived = archived


def make_user(login: str = "octocat", user_id: int = 1) -> Dict[str, Any]:
    return {
        "login": login,
        "id": user_id,
        "avatar_url": f"https://avatars.example/{login}",
        "url": f"https://api.github.com/users/{login}",
    }


def make_pr(**overrides: Any) -> Dict[str, Any]:
    pr = {
        "id": 9001,
        "number": 42,
        "title": "Fix bug",
        "body": "Fixes the off-by-one in the parser.",
        "html_url": "https://github.com/acme/widgets/pull/42",
        "state": "open",
        "user": make_user(),
        "merged": False,
        "merged_by": None,
    }
    pr.update(overrides)
    return pr


def make_review(state: str = "approved", body: Optional[str] = None) -> Dict[str, Any]:
    return {
        "id": 77,
        "user": make_user("reviewer", 2),
        "body": body,
        "state": state,
        "submitted_at": "2024-05-01T12:00:00Z",
    }


@pytest.fixture
def client() -> FakeThreadClient:
    return FakeThreadClient()
