"""
Keeps one Discord thread per pull request in step with GitHub.

All work for a given PR id runs under that PR's lock, so concurrent
deliveries for the same PR cannot both decide to create a thread.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import AsyncIterator, Awaitable, Dict, Optional, TypeVar

from . import formatter
from .client import ChannelConfigError, ThreadClient, ThreadHandle
from .models import PullRequest, ThreadAction, ThreadRecord
from .registry import ThreadRegistry

log = logging.getLogger("red.prthreads.sync")

T = TypeVar("T")


class _PRLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class ThreadSynchronizer:
    def __init__(
        self,
        client: ThreadClient,
        registry: ThreadRegistry,
        *,
        timeout: float = 15.0,
    ) -> None:
        self.client = client
        self.registry = registry
        self.timeout = timeout
        self._locks: Dict[int, _PRLock] = {}

    @contextlib.asynccontextmanager
    async def _pr_lock(self, pr_id: int) -> AsyncIterator[None]:
        """Hold the lock for ``pr_id``; the entry is dropped once nobody holds or awaits it."""
        entry = self._locks.get(pr_id)
        if entry is None:
            entry = self._locks[pr_id] = _PRLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[pr_id]

    async def _call(self, aw: Awaitable[T]) -> T:
        return await asyncio.wait_for(aw, timeout=self.timeout)

    # ----------------------
    # Public operations
    # ----------------------
    async def create_thread(self, pr: PullRequest) -> Optional[ThreadHandle]:
        """
        Create the thread for ``pr`` and post the introduction message.

        A PR that already has a thread is not created twice; the existing
        thread is resolved and returned instead.
        """
        async with self._pr_lock(pr.id):
            record = await self.registry.lookup(pr.id)
            if record is not None:
                log.info("PR #%s already has thread %s, not creating another", pr.number, record.thread_id)
                return await self._resolve(record, pr)
            return await self._create(pr)

    async def update_thread(self, pr: PullRequest, action: ThreadAction) -> Optional[ThreadHandle]:
        """
        Apply ``action`` to the thread for ``pr``.

        If no thread is known the PR's "opened" event was missed, so the
        thread is created first and the action applied to it afterwards.
        """
        async with self._pr_lock(pr.id):
            record = await self.registry.lookup(pr.id)
            if record is None:
                log.info("No thread found for PR #%s, creating one...", pr.number)
                thread = await self._create(pr)
            else:
                thread = await self._resolve(record, pr)
            if thread is None:
                return None
            return await self._apply(thread, pr, action)

    # ----------------------
    # Internals (caller holds the PR lock)
    # ----------------------
    async def _create(self, pr: PullRequest) -> Optional[ThreadHandle]:
        name = formatter.thread_name(pr)
        body = formatter.intro_message(pr)
        try:
            thread = await self._call(self.client.create(name))
        except ChannelConfigError as e:
            log.error("Cannot create thread for PR #%s: %s", pr.number, e)
            return None
        except asyncio.TimeoutError:
            log.error("Timed out creating thread for PR #%s", pr.number)
            return None
        except Exception:
            log.exception("Error creating thread for PR #%s", pr.number)
            return None

        # The thread exists from here on; it is only registered once the intro is posted.
        try:
            await self._call(self.client.send(thread, body))
        except asyncio.TimeoutError:
            log.error("Timed out posting intro to thread %s for PR #%s; thread left unregistered", thread.id, pr.number)
            return None
        except Exception:
            log.exception("Error posting intro to thread %s for PR #%s; thread left unregistered", thread.id, pr.number)
            return None

        try:
            await self.registry.record(pr.id, thread.id, pr.number)
        except Exception:
            log.exception("Created thread %s for PR #%s but failed to record it", thread.id, pr.number)
            return None
        log.info("Created thread %s for PR #%s", thread.id, pr.number)
        return thread

    async def _resolve(self, record: ThreadRecord, pr: PullRequest) -> Optional[ThreadHandle]:
        try:
            thread = await self._call(self.client.fetch(record.thread_id))
        except asyncio.TimeoutError:
            log.error("Timed out fetching thread %s for PR #%s", record.thread_id, pr.number)
            return None
        except Exception:
            log.exception("Error fetching thread %s for PR #%s", record.thread_id, pr.number)
            return None
        if thread is None:
            log.error("Thread %s not found for PR #%s", record.thread_id, pr.number)
        return thread

    async def _apply(
        self, thread: ThreadHandle, pr: PullRequest, action: ThreadAction
    ) -> Optional[ThreadHandle]:
        if action is ThreadAction.OPENED:
            return thread
        message = formatter.format_message(action, pr)
        if message is None:
            log.error("Nothing to post for PR #%s action %s: review object is missing", pr.number, action.value)
            return thread
        try:
            if action is ThreadAction.CLOSED:
                await self._call(self.client.send(thread, message))
                await self._call(self.client.set_archived(thread, True))
            elif action is ThreadAction.REOPENED:
                await self._call(self.client.set_archived(thread, False))
                await self._call(self.client.send(thread, message))
            else:
                await self._call(self.client.send(thread, message))
                # Posting unarchives the thread; a closed PR's thread stays archived.
                if pr.state == "closed":
                    await self._call(self.client.set_archived(thread, True))
        except asyncio.TimeoutError:
            log.error("Timed out updating thread %s for PR #%s (%s)", thread.id, pr.number, action.value)
            return None
        except Exception:
            log.exception("Error updating thread %s for PR #%s (%s)", thread.id, pr.number, action.value)
            return None
        log.info("Updated thread for PR #%s with action: %s", pr.number, action.value)
        return thread
