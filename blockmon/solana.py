"""Live Solana event source using `logsSubscribe` over websocket."""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from typing import Any, Dict, List, Mapping, Optional, Sequence

import aiohttp

from blockmon.chains import RejectedTransactionError
from blockmon.pipeline import NotificationPipeline
from blockmon.utils.logging import get_logger
from blockmon.utils.tx_parser import normalize_solana_transaction

logger = get_logger(__name__)

SEEN_MAX = 5000
RECONNECT_DELAY_SECONDS = 5.0
RPC_TIMEOUT_SECONDS = 15
COMMITMENT = "confirmed"


class SeenSignatures:
    """Bounded memory of processed signatures; the oldest are forgotten first."""

    def __init__(self, max_size: int = SEEN_MAX) -> None:
        self.max_size = max_size
        self._items: "OrderedDict[str, None]" = OrderedDict()

    def __contains__(self, signature: object) -> bool:
        return signature in self._items

    def __len__(self) -> int:
        return len(self._items)

    def add(self, signature: str) -> None:
        self._items[signature] = None
        self._items.move_to_end(signature)
        while len(self._items) > self.max_size:
            self._items.popitem(last=False)


class SolanaSubscription:
    """Stream transactions that mention watched Solana accounts."""

    def __init__(
        self,
        pipeline: NotificationPipeline,
        addresses: Sequence[str],
        rpc_url: str,
        wss_url: str,
        session: Optional[aiohttp.ClientSession] = None,
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
    ) -> None:
        self.pipeline = pipeline
        self.addresses: List[str] = [a for a in addresses if a]
        self.rpc_url = rpc_url
        self.wss_url = wss_url
        self.reconnect_delay = reconnect_delay
        self.seen = SeenSignatures()
        self._session = session
        self._owns_session = session is None
        self._subscriptions: Dict[int, str] = {}
        self._request_id = 0

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=RPC_TIMEOUT_SECONDS)
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def run(self) -> None:
        """Subscribe and listen until cancelled, reconnecting on errors."""
        if not self.addresses:
            logger.info("solana_subscription_disabled")
            return
        while True:
            try:
                await self._connect_and_listen()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("solana_socket_error", error=str(exc))
            logger.info("solana_reconnecting", delay=self.reconnect_delay)
            await asyncio.sleep(self.reconnect_delay)

    async def _connect_and_listen(self) -> None:
        session = await self._get_session()
        async with session.ws_connect(self.wss_url, heartbeat=30) as ws:
            pending: Dict[int, str] = {}
            for address in self.addresses:
                request_id = self._next_id()
                pending[request_id] = address
                await ws.send_json(
                    {
                        "jsonrpc": "2.0",
                        "id": request_id,
                        "method": "logsSubscribe",
                        "params": [{"mentions": [address]}, {"commitment": COMMITMENT}],
                    }
                )
            logger.info("solana_subscribed", addresses=len(self.addresses))

            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    await self.handle_message(msg.json(), pending)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    raise ConnectionError(f"Websocket error: {ws.exception()}")

    async def handle_message(
        self, data: Mapping[str, Any], pending: Optional[Dict[int, str]] = None
    ) -> None:
        if "id" in data and "result" in data and pending is not None:
            address = pending.pop(data["id"], None)
            if address is not None:
                self._subscriptions[data["result"]] = address
            return
        if data.get("method") != "logsNotification":
            return
        value = ((data.get("params") or {}).get("result") or {}).get("value") or {}
        signature = value.get("signature")
        if signature:
            await self.handle_signature(signature)

    async def handle_signature(self, signature: str) -> None:
        if signature in self.seen:
            return
        self.seen.add(signature)
        try:
            result = await self.fetch_transaction(signature)
            if not result:
                logger.info("solana_transaction_missing", signature=signature)
                return
            tx = normalize_solana_transaction(result, signature)
        except RejectedTransactionError as exc:
            logger.warning("transaction_rejected", signature=signature, error=str(exc))
            return
        except Exception as exc:
            logger.error("solana_fetch_failed", signature=signature, error=str(exc))
            return
        await self.pipeline.ingest_transactions([tx])

    async def fetch_transaction(self, signature: str) -> Optional[Mapping[str, Any]]:
        session = await self._get_session()
        body = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": "getTransaction",
            "params": [
                signature,
                {
                    "encoding": "jsonParsed",
                    "maxSupportedTransactionVersion": 0,
                    "commitment": COMMITMENT,
                },
            ],
        }
        async with session.post(self.rpc_url, json=body) as resp:
            resp.raise_for_status()
            data = await resp.json()
        if data.get("error"):
            raise RuntimeError(f"RPC error: {data['error']}")
        return data.get("result")
