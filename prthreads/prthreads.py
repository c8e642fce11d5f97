from __future__ import annotations

import asyncio
import logging
from typing import Optional

import discord
from github import GithubException
from redbot.core import commands, Config
from redbot.core.bot import Red

from .client import DiscordThreadClient
from .common import (
    DEFAULT_GLOBAL_CONFIG,
    DEFAULT_PORT,
    DEFAULT_THREAD_RECORD,
    ENV_SETTINGS,
    THREADS_GROUP,
    resolve_setting,
)
from .github_app import check_app_connection, manual_test_hint
from .registry import ConfigThreadRegistry, MemoryThreadRegistry
from .router import EventRouter, PULL_REQUEST, PULL_REQUEST_REVIEW, PULL_REQUEST_REVIEW_REQUEST
from .synchronizer import ThreadSynchronizer
from .webhook import WEBHOOK_PATH, WebhookServer

# Durations Discord accepts for thread auto-archival
AUTO_ARCHIVE_CHOICES = (60, 1440, 4320, 10080)


class PRThreads(commands.Cog):
    """
    Mirror GitHub pull requests into Discord threads.

    Each pull request gets one thread in the configured channel. The thread is
    updated on new commits, review requests and reviews, archived when the PR
    is closed or merged and unarchived when it is reopened.
    """

    __version__ = "1.0.0"

    def __init__(self, bot: Red) -> None:
        self.bot = bot
        self.log = logging.getLogger("red.prthreads")
        self.config = Config.get_conf(self, identifier=908039527271104517, force_registration=True)
        self.config.register_global(**DEFAULT_GLOBAL_CONFIG)
        self.config.init_custom(THREADS_GROUP, 1)
        self.config.register_custom(THREADS_GROUP, **DEFAULT_THREAD_RECORD)

        self.client = DiscordThreadClient(bot, self._get_channel_id)
        self.synchronizer: Optional[ThreadSynchronizer] = None
        self.router: Optional[EventRouter] = None
        self.server: Optional[WebhookServer] = None

    async def _setting(self, key: str):
        value = await self.config.get_attr(key)()
        if key not in ENV_SETTINGS:
            return value
        env_name, cast = ENV_SETTINGS[key]
        return resolve_setting(value, env_name, cast=cast)

    async def _get_channel_id(self) -> Optional[int]:
        return await self._setting("channel_id")

    # ----------------------
    # Lifecycle
    # ----------------------
    async def cog_load(self) -> None:
        """Build the sync pipeline and start the webhook listener."""
        conf = await self.config.all()
        self.client.auto_archive_minutes = conf["auto_archive_minutes"]
        if conf["persist_threads"]:
            registry = ConfigThreadRegistry(self.config)
        else:
            registry = MemoryThreadRegistry()
        self.synchronizer = ThreadSynchronizer(self.client, registry, timeout=float(conf["request_timeout"]))
        self.router = EventRouter(self.synchronizer)

        secret = await self._setting("webhook_secret")
        if not secret:
            self.log.warning("No webhook secret configured; every delivery will be rejected")
        self.server = WebhookServer(
            self.router,
            secret=secret,
            host=conf["host"],
            port=await self._setting("port") or DEFAULT_PORT,
        )
        try:
            await self.server.start()
        except OSError:
            self.log.exception("Failed to start webhook server on %s:%s", self.server.host, self.server.port)

    async def cog_unload(self) -> None:
        """Stop the webhook listener."""
        if self.server is not None:
            await self.server.stop()

    async def _restart_server(self) -> bool:
        if self.server is None:
            return False
        await self.server.stop()
        self.server.host = await self.config.host()
        self.server.port = await self._setting("port") or DEFAULT_PORT
        try:
            await self.server.start()
        except OSError:
            self.log.exception("Failed to restart webhook server on %s:%s", self.server.host, self.server.port)
            return False
        return True

    # ----------------------
    # Configuration Commands
    # ----------------------
    @commands.group(name="prthreadset")
    @commands.is_owner()
    async def prthreadset(self, ctx: commands.Context) -> None:
        """Configure GitHub pull request threads."""

    @prthreadset.command(name="channel")
    async def prthreadset_channel(self, ctx: commands.Context, channel: discord.TextChannel) -> None:
        """Set the text channel that receives one thread per pull request."""
        await self.config.channel_id.set(channel.id)
        self.log.debug("Destination channel set: %s (%s)", channel.name, channel.id)
        await ctx.send(f"✅ Pull request threads will be created in {channel.mention}.")

    @prthreadset.command(name="secret")
    async def prthreadset_secret(self, ctx: commands.Context, secret: str) -> None:
        """Set the webhook secret shared with GitHub."""
        await self.config.webhook_secret.set(secret)
        if self.server is not None:
            self.server.secret = secret
        try:
            await ctx.message.delete()
        except discord.HTTPException:
            pass
        await ctx.send("✅ Webhook secret set.")

    @prthreadset.command(name="listen")
    async def prthreadset_listen(self, ctx: commands.Context, host: str, port: int) -> None:
        """Set the address the webhook listener binds to and restart it."""
        if not 0 < port < 65536:
            await ctx.send("❌ Port must be between 1 and 65535.")
            return
        await self.config.host.set(host)
        await self.config.port.set(port)
        if await self._restart_server():
            await ctx.send(f"✅ Webhook listener running on `{host}:{port}`.")
        else:
            await ctx.send("❌ Could not start the webhook listener. Check the logs.")

    @prthreadset.command(name="timeout")
    async def prthreadset_timeout(self, ctx: commands.Context, seconds: int) -> None:
        """Set how long each Discord call may take before the event is dropped."""
        if seconds < 1:
            await ctx.send("❌ Minimum timeout is 1 second.")
            return
        await self.config.request_timeout.set(seconds)
        if self.synchronizer is not None:
            self.synchronizer.timeout = float(seconds)
        await ctx.tick()

    @prthreadset.command(name="autoarchive")
    async def prthreadset_autoarchive(self, ctx: commands.Context, minutes: int) -> None:
        """Set the auto-archive duration for new threads (60, 1440, 4320 or 10080)."""
        if minutes not in AUTO_ARCHIVE_CHOICES:
            await ctx.send(f"❌ Choose one of: {', '.join(str(m) for m in AUTO_ARCHIVE_CHOICES)}.")
            return
        await self.config.auto_archive_minutes.set(minutes)
        self.client.auto_archive_minutes = minutes
        await ctx.tick()

    @prthreadset.command(name="persist")
    async def prthreadset_persist(self, ctx: commands.Context, enabled: bool) -> None:
        """Keep pull request -> thread links across restarts. Takes effect on reload."""
        await self.config.persist_threads.set(enabled)
        status = "✅ Enabled" if enabled else "❌ Disabled"
        await ctx.send(f"{status}. Reload the cog to apply.")

    @prthreadset.command(name="githubapp")
    async def prthreadset_githubapp(
        self, ctx: commands.Context, app_id: str, installation_id: str, private_key_path: str
    ) -> None:
        """Set the GitHub App credentials used by `checkapp`."""
        await self.config.github_app_id.set(app_id)
        await self.config.github_installation_id.set(installation_id)
        await self.config.github_private_key_path.set(private_key_path)
        await ctx.send("✅ GitHub App settings saved.")

    @prthreadset.command(name="repo")
    async def prthreadset_repo(self, ctx: commands.Context, repo: str) -> None:
        """Set the repository as OWNER/NAME."""
        if repo.count("/") != 1:
            await ctx.send("❌ Use the form `owner/name`.")
            return
        await self.config.github_repo.set(repo)
        await ctx.send(f"✅ Repository set to `{repo}`.")

    @prthreadset.command(name="checkapp")
    async def prthreadset_checkapp(self, ctx: commands.Context) -> None:
        """Test the GitHub App connection."""
        app_id = await self._setting("github_app_id")
        key_path = await self._setting("github_private_key_path")
        installation_id = await self._setting("github_installation_id")
        if not app_id or not key_path:
            await ctx.send("GitHub App credentials not provided. Skipping connection test.")
            return
        try:
            name = await asyncio.to_thread(check_app_connection, app_id, key_path, installation_id)
        except (OSError, ValueError, GithubException) as e:
            self.log.warning("GitHub App connection check failed: %s", e)
            await ctx.send(f"❌ Failed to connect to GitHub App: {e}")
            return
        message = f"✅ Successfully connected to GitHub App: {name}"
        hint = manual_test_hint(await self.config.github_repo())
        if hint:
            message += f"\n\n{hint}"
        await ctx.send(message)

    @prthreadset.command(name="webhookinfo")
    async def prthreadset_webhookinfo(self, ctx: commands.Context) -> None:
        """How to point a GitHub webhook at this bot."""
        port = await self._setting("port") or DEFAULT_PORT
        await ctx.send(
            f"Point a GitHub webhook (content type `application/json`) at "
            f"`https://<your-host>{WEBHOOK_PATH}` (listener port {port}, use a reverse proxy for TLS). "
            "Use the same secret as `prthreadset secret` and subscribe to: "
            f"`{PULL_REQUEST}`, `{PULL_REQUEST_REVIEW}`, `{PULL_REQUEST_REVIEW_REQUEST}`."
        )

    @prthreadset.command(name="show")
    async def prthreadset_show(self, ctx: commands.Context) -> None:
        """Show current configuration."""
        data = await self.config.all()
        channel_id = await self._get_channel_id()
        embed = discord.Embed(title="PR Threads Configuration", color=await ctx.embed_color())
        embed.add_field(name="Channel", value=f"<#{channel_id}>" if channel_id else "Not set", inline=False)
        embed.add_field(
            name="Webhook Secret",
            value="Set" if await self._setting("webhook_secret") else "Not set",
            inline=True,
        )
        listener = "🟢 Running" if self.server is not None and self.server.is_running else "🔴 Stopped"
        port = await self._setting("port") or DEFAULT_PORT
        embed.add_field(name="Listener", value=f"{listener} on `{data['host']}:{port}`", inline=True)
        embed.add_field(name="Timeout", value=f"{data['request_timeout']}s", inline=True)
        embed.add_field(name="Auto-archive", value=f"{data['auto_archive_minutes']} min", inline=True)
        embed.add_field(
            name="Persist Links",
            value="✅ Enabled" if data["persist_threads"] else "❌ Disabled",
            inline=True,
        )
        embed.add_field(name="Repository", value=data.get("github_repo") or "Not set", inline=False)
        await ctx.send(embed=embed)
