"""
aiohttp listener for GitHub webhook deliveries.
"""
from __future__ import annotations

import json
import logging
from typing import Optional

from aiohttp import web

from .router import EventRouter
from .signature import verify_signature

log = logging.getLogger("red.prthreads.webhook")

SIGNATURE_HEADER = "X-Hub-Signature-256"
EVENT_HEADER = "X-GitHub-Event"
WEBHOOK_PATH = "/webhook"


class WebhookServer:
    def __init__(
        self,
        router: EventRouter,
        *,
        secret: Optional[str] = None,
        host: str = "0.0.0.0",
        port: int = 3000,
    ) -> None:
        self.router = router
        self.secret = secret
        self.host = host
        self.port = port
        self._runner: Optional[web.AppRunner] = None

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post(WEBHOOK_PATH, self.handle_webhook)
        return app

    async def handle_webhook(self, request: web.Request) -> web.Response:
        body = await request.read()
        if not verify_signature(self.secret, body, request.headers.get(SIGNATURE_HEADER)):
            log.warning("Rejected webhook delivery with an invalid signature from %s", request.remote)
            return web.Response(status=401, text="Invalid signature")

        event_type = request.headers.get(EVENT_HEADER)
        try:
            payload = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError):
            log.warning("Ignoring %s delivery with an undecodable body", event_type)
            return web.Response(text="Webhook received")

        try:
            await self.router.route(event_type, payload)
        except Exception:
            log.exception("Error handling %s delivery", event_type)
        return web.Response(text="Webhook received")

    async def start(self) -> None:
        if self._runner is not None:
            return
        runner = web.AppRunner(self.build_app())
        await runner.setup()
        site = web.TCPSite(runner, self.host, self.port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise
        self._runner = runner
        log.info("Webhook server running on %s:%s", self.host, self.port)

    async def stop(self) -> None:
        if self._runner is None:
            return
        await self._runner.cleanup()
        self._runner = None
        log.info("Webhook server stopped")
