"""HTTP receiver for Moralis Streams webhooks."""

from __future__ import annotations

import json
from typing import Optional

from aiohttp import web

from blockmon.moralis_client import verify_signature
from blockmon.pipeline import NotificationPipeline
from blockmon.utils.logging import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADER = "x-signature"
PIPELINE_KEY = web.AppKey("pipeline", NotificationPipeline)
SECRET_KEY = web.AppKey("streams_secret", str)


async def handle_webhook(request: web.Request) -> web.Response:
    raw_body = await request.text()
    try:
        payload = json.loads(raw_body)
    except json.JSONDecodeError:
        logger.warning("webhook_invalid_json", remote=request.remote)
        return web.Response(text="invalid json", status=400)

    signature = request.headers.get(SIGNATURE_HEADER)
    if not verify_signature(
        payload, signature, request.app[SECRET_KEY], raw_body=raw_body
    ):
        logger.warning(
            "webhook_invalid_signature",
            remote=request.remote,
            has_signature=bool(signature),
        )
        return web.Response(text="invalid signature", status=401)

    await request.app[PIPELINE_KEY].ingest(payload)
    return web.Response(text="ok")


async def handle_health(request: web.Request) -> web.Response:
    cache = request.app[PIPELINE_KEY].cache
    return web.json_response({"status": "ok", "pending": len(cache)})


def create_webhook_app(
    pipeline: NotificationPipeline, secret: str, path: str = "/webhook"
) -> web.Application:
    app = web.Application()
    app[PIPELINE_KEY] = pipeline
    app[SECRET_KEY] = secret
    app.router.add_post(path, handle_webhook)
    app.router.add_get("/health", handle_health)
    return app


class WebhookServer:
    """Run the webhook application on a TCP port."""

    def __init__(
        self,
        pipeline: NotificationPipeline,
        secret: str,
        host: str = "0.0.0.0",
        port: int = 3000,
        path: str = "/webhook",
    ) -> None:
        self.app = create_webhook_app(pipeline, secret, path)
        self.host = host
        self.port = port
        self.path = path
        self._runner: Optional[web.AppRunner] = None

    async def start(self) -> None:
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info(
            "webhook_server_started", host=self.host, port=self.port, path=self.path
        )

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            logger.info("webhook_server_stopped")
