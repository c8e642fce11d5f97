"""
PR -> thread registry for the PRThreads cog.

Records are created once per pull request id and never removed, so an
archived thread can still be found when its PR is reopened.
"""
import logging
from typing import Dict, Optional, Protocol

from .common import THREADS_GROUP
from .models import ThreadRecord

log = logging.getLogger("red.prthreads.registry")


class ThreadRegistry(Protocol):
    async def lookup(self, pr_id: int) -> Optional[ThreadRecord]:
        ...

    async def record(self, pr_id: int, thread_id: int, pr_number: int) -> ThreadRecord:
        ...


class MemoryThreadRegistry:
    """Process-local registry. Links are lost when the bot restarts."""

    def __init__(self) -> None:
        self._records: Dict[int, ThreadRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    async def lookup(self, pr_id: int) -> Optional[ThreadRecord]:
        return self._records.get(pr_id)

    async def record(self, pr_id: int, thread_id: int, pr_number: int) -> ThreadRecord:
        existing = self._records.get(pr_id)
        if existing is not None:
            log.warning(
                "PR id %s already linked to thread %s, ignoring thread %s",
                pr_id, existing.thread_id, thread_id,
            )
            return existing
        record = ThreadRecord(thread_id=thread_id, pr_number=pr_number)
        self._records[pr_id] = record
        return record


class ConfigThreadRegistry:
    """
    Registry backed by a Red Config custom group keyed by PR id.

    The group must be initialised by the cog with ``init_custom(THREADS_GROUP, 1)``
    and ``register_custom(THREADS_GROUP, **DEFAULT_THREAD_RECORD)``.
    """

    def __init__(self, config) -> None:
        self.config = config

    def _group(self, pr_id: int):
        return self.config.custom(THREADS_GROUP, str(pr_id))

    async def lookup(self, pr_id: int) -> Optional[ThreadRecord]:
        data = await self._group(pr_id).all()
        if not data or data.get("thread_id") is None:
            return None
        return ThreadRecord.from_dict(data)

    async def record(self, pr_id: int, thread_id: int, pr_number: int) -> ThreadRecord:
        existing = await self.lookup(pr_id)
        if existing is not None:
            log.warning(
                "PR id %s already linked to thread %s, ignoring thread %s",
                pr_id, existing.thread_id, thread_id,
            )
            return existing
        record = ThreadRecord(thread_id=thread_id, pr_number=pr_number)
        await self._group(pr_id).set(record.to_dict())
        return record
