import asyncio

import pytest

from conftest import FakeThreadClient, make_pr, make_review, make_user
from prthreads.models import ThreadAction, ThreadRecord
from prthreads.registry import MemoryThreadRegistry
from prthreads.router import EventRouter, RouteOutcome, classify
from prthreads.synchronizer import ThreadSynchronizer


@pytest.mark.parametrize(
    "event_type, action, expected",
    [
        ("pull_request", "opened", ThreadAction.OPENED),
        ("pull_request", "closed", ThreadAction.CLOSED),
        ("pull_request", "reopened", ThreadAction.REOPENED),
        ("pull_request", "synchronize", ThreadAction.SYNCHRONIZE),
        ("pull_request", "edited", None),
        ("pull_request", "labeled", None),
        ("pull_request", None, None),
        ("pull_request_review", "submitted", ThreadAction.REVIEW_SUBMITTED),
        ("pull_request_review_request", "review_requested", ThreadAction.REVIEW_REQUESTED),
        ("issues", "opened", None),
        ("ping", None, None),
        (None, "opened", None),
    ],
)
def test_classify(event_type, action, expected) -> None:
    assert classify(event_type, action) is expected


def _router(client: FakeThreadClient):
    registry = MemoryThreadRegistry()
    return EventRouter(ThreadSynchronizer(client, registry, timeout=5.0)), registry


def test_opened_creates_thread(client: FakeThreadClient) -> None:
    async def run() -> None:
        router, registry = _router(client)
        outcome = await router.route("pull_request", {"action": "opened", "pull_request": make_pr()})
        assert outcome is RouteOutcome.SYNCED
        (thread,) = client.threads.values()
        assert "PR #42" in thread.name
        assert await registry.lookup(9001) == ThreadRecord(thread.id, 42)

    asyncio.run(run())


def test_review_event_attaches_review(client: FakeThreadClient) -> None:
    async def run() -> None:
        router, _ = _router(client)
        await router.route("pull_request", {"action": "opened", "pull_request": make_pr()})
        payload = {
            "action": "submitted",
            "pull_request": make_pr(),
            "review": make_review("changes_requested", "Please rename this."),
        }
        assert await router.route("pull_request_review", payload) is RouteOutcome.SYNCED
        (thread,) = client.threads.values()
        assert thread.messages[-1] == (
            "Review submitted by reviewer: 🔄 Changes requested\n\n> Please rename this."
        )

    asyncio.run(run())


def test_review_request_attaches_reviewer(client: FakeThreadClient) -> None:
    async def run() -> None:
        router, _ = _router(client)
        await router.route("pull_request", {"action": "opened", "pull_request": make_pr()})
        payload = {
            "action": "review_requested",
            "pull_request": make_pr(),
            "requested_reviewer": make_user("alice", 8),
        }
        await router.route("pull_request_review_request", payload)
        (thread,) = client.threads.values()
        assert thread.messages[-1] == "Review requested for PR #42 from alice 👀"

    asyncio.run(run())


def test_unsupported_and_malformed_events_are_ignored(client: FakeThreadClient) -> None:
    async def run() -> None:
        router, registry = _router(client)
        assert await router.route("pull_request", {"action": "edited", "pull_request": make_pr()}) is RouteOutcome.IGNORED
        assert await router.route("issues", {"action": "opened"}) is RouteOutcome.IGNORED
        assert await router.route("pull_request", {"action": "opened"}) is RouteOutcome.IGNORED
        assert await router.route("pull_request", {"action": "opened", "pull_request": {"id": 1}}) is RouteOutcome.IGNORED
        assert await router.route("pull_request", ["not", "an", "object"]) is RouteOutcome.IGNORED
        assert await router.route("pull_request", {"action": ["opened"], "pull_request": make_pr()}) is RouteOutcome.IGNORED
        assert await router.route("pull_request", {"action": "opened", "pull_request": make_pr(title=123)}) is RouteOutcome.IGNORED
        assert await router.route("pull_request", {"action": "opened", "pull_request": make_pr(id="9001")}) is RouteOutcome.IGNORED
        assert await router.route("pull_request", {"action": "opened", "pull_request": make_pr(user={"login": 7})}) is RouteOutcome.IGNORED
        review_payload = {"action": "submitted", "pull_request": make_pr(), "review": "LGTM"}
        assert await router.route("pull_request_review", review_payload) is RouteOutcome.IGNORED
        assert client.calls == []
        assert len(registry) == 0

    asyncio.run(run())


def test_failed_sync_is_reported(client: FakeThreadClient) -> None:
    async def run() -> None:
        router, _ = _router(client)
        client.fail_create = RuntimeError("boom")
        outcome = await router.route("pull_request", {"action": "opened", "pull_request": make_pr()})
        assert outcome is RouteOutcome.FAILED

    asyncio.run(run())


def test_non_object_repository_is_logged_as_unknown(client: FakeThreadClient) -> None:
    async def run() -> None:
        router, registry = _router(client)
        payload = {"action": "opened", "pull_request": make_pr(), "repository": "acme/widgets"}
        assert await router.route("pull_request", payload) is RouteOutcome.SYNCED
        assert len(registry) == 1

    asyncio.run(run())
