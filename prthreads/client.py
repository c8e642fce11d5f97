"""
Chat-platform capability used by the thread synchronizer.

The synchronizer only depends on the ThreadClient protocol; DiscordThreadClient
is the discord.py implementation used by the cog.
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, Protocol

import discord

log = logging.getLogger("red.prthreads.client")


class PRThreadsError(Exception):
    """Base error for the PRThreads cog."""


class ChannelConfigError(PRThreadsError):
    """The destination channel is unset or cannot hold threads."""


class ThreadHandle(Protocol):
    id: int


class ThreadClient(Protocol):
    async def create(self, name: str) -> ThreadHandle:
        ...

    async def fetch(self, thread_id: int) -> Optional[ThreadHandle]:
        ...

    async def send(self, thread: ThreadHandle, text: str) -> None:
        ...

    async def set_archived(self, thread: ThreadHandle, archived: bool) -> None:
        ...


class DiscordThreadClient:
    """Creates and drives public threads under a single text channel."""

    def __init__(
        self,
        bot: discord.Client,
        channel_id_getter: Callable[[], Awaitable[Optional[int]]],
        auto_archive_minutes: int = 60,
    ) -> None:
        self.bot = bot
        self._channel_id_getter = channel_id_getter
        self.auto_archive_minutes = auto_archive_minutes

    async def _get_channel(self) -> discord.TextChannel:
        channel_id = await self._channel_id_getter()
        if not channel_id:
            raise ChannelConfigError("No destination channel configured")
        channel = self.bot.get_channel(int(channel_id))
        if channel is None:
            try:
                channel = await self.bot.fetch_channel(int(channel_id))
            except (discord.NotFound, discord.Forbidden) as e:
                raise ChannelConfigError(f"Channel {channel_id} is not accessible: {e}") from e
        if not isinstance(channel, discord.TextChannel):
            raise ChannelConfigError(f"Channel {channel_id} is not a text channel")
        return channel

    async def create(self, name: str) -> discord.Thread:
        channel = await self._get_channel()
        thread = await channel.create_thread(
            name=name,
            type=discord.ChannelType.public_thread,
            auto_archive_duration=self.auto_archive_minutes,
        )
        return thread

    async def fetch(self, thread_id: int) -> Optional[discord.Thread]:
        channel = self.bot.get_channel(int(thread_id))
        if channel is None:
            try:
                channel = await self.bot.fetch_channel(int(thread_id))
            except discord.NotFound:
                return None
        if not isinstance(channel, discord.Thread):
            log.debug("Channel %s is not a thread", thread_id)
            return None
        return channel

    async def send(self, thread: discord.Thread, text: str) -> None:
        await thread.send(text)

    async def set_archived(self, thread: discord.Thread, archived: bool) -> None:
        await thread.edit(archived=archived)
