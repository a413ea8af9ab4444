"""Moralis Streams REST client and webhook signature verification."""

from __future__ import annotations

import hmac
import json
from typing import Any, AsyncIterator, Dict, Optional

import aiohttp
from web3 import Web3

from blockmon.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_API_URL = "https://api.moralis-streams.com"
DEFAULT_PAGE_SIZE = 100
REQUEST_TIMEOUT_SECONDS = 15


class MoralisError(RuntimeError):
    """Raised when the Streams API answers with a non-success status."""

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"Moralis Streams API error {status}: {body[:200]}")
        self.status = status
        self.body = body


class MoralisStreamsClient:
    """Manage the watched-address list of one EVM stream."""

    def __init__(
        self,
        api_key: str,
        stream_id: str,
        base_url: str = DEFAULT_API_URL,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.api_key = api_key
        self.stream_id = stream_id
        self.base_url = base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Accept": "application/json"},
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SECONDS),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    @property
    def _address_url(self) -> str:
        return f"{self.base_url}/streams/evm/{self.stream_id}/address"

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        session = await self._get_session()
        async with session.request(
            method,
            url,
            params=params,
            json=payload,
            headers={"X-API-Key": self.api_key},
        ) as resp:
            text = await resp.text()
            if resp.status >= 400:
                logger.warning(
                    "moralis_request_failed",
                    method=method,
                    url=url,
                    status=resp.status,
                )
                raise MoralisError(resp.status, text)
            if not text:
                return None
            return json.loads(text)

    async def add_address(self, address: str) -> None:
        await self._request("POST", self._address_url, payload={"address": address})
        logger.info("moralis_address_added", address=address)

    async def remove_address(self, address: str) -> None:
        await self._request("DELETE", self._address_url, payload={"address": address})
        logger.info("moralis_address_removed", address=address)

    async def iter_addresses(
        self, page_size: int = DEFAULT_PAGE_SIZE
    ) -> AsyncIterator[str]:
        """Yield every watched address, following pagination cursors."""
        cursor: Optional[str] = None
        while True:
            params: Dict[str, Any] = {"limit": page_size}
            if cursor:
                params["cursor"] = cursor
            data = await self._request("GET", self._address_url, params=params) or {}
            for item in data.get("result") or []:
                address = item.get("address") if isinstance(item, dict) else item
                if isinstance(address, str) and address:
                    yield address
            cursor = data.get("cursor")
            if not cursor:
                break


def compute_signature(body: str, secret: str) -> str:
    """Return the `0x`-prefixed keccak256 of `body + secret`."""
    return Web3.to_hex(Web3.keccak(text=body + secret))


def verify_signature(
    payload: Any,
    signature: Optional[str],
    secret: Optional[str],
    raw_body: Optional[str] = None,
) -> bool:
    """Check a Moralis `x-signature` header.

    Moralis signs the compact JSON serialization of the body. The raw request
    text is tried first, then a compact re-serialization of the parsed
    payload. Any error during verification counts as a mismatch.
    """
    if not payload or not signature or not secret:
        return False
    try:
        candidates = []
        if raw_body:
            candidates.append(raw_body)
        candidates.append(
            json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        )
        provided = signature.strip().lower()
        return any(
            hmac.compare_digest(compute_signature(body, secret).lower(), provided)
            for body in candidates
        )
    except Exception as exc:
        logger.warning("signature_verification_error", error=str(exc))
        return False
