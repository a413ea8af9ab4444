import json

import pytest
from aiohttp import test_utils

from blockmon.lifecycle import PendingMessageCache
from blockmon.moralis_client import compute_signature
from blockmon.names import NameResolver
from blockmon.pipeline import NotificationPipeline
from blockmon.webhook import SIGNATURE_HEADER, create_webhook_app

SECRET = "streams-secret"
BODY = json.dumps(
    {
        "confirmed": False,
        "chainId": "0x1",
        "block": {"number": "1", "timestamp": "1700000000"},
        "txs": [
            {
                "hash": "0x" + "cd" * 32,
                "fromAddress": "0x1111111111111111111111111111111111111111",
                "toAddress": "0x2222222222222222222222222222222222222222",
                "value": "1000000000000000000",
            }
        ],
        "txsInternal": [],
    },
    separators=(",", ":"),
)


class DummyTransport:
    def __init__(self) -> None:
        self.sent = []

    async def send(self, text: str) -> int:
        self.sent.append(text)
        return len(self.sent)

    async def edit(self, message_id: int, text: str) -> None:
        raise AssertionError("unexpected edit")


class NoNames:
    async def get(self, address):
        return None


def make_app():
    transport = DummyTransport()
    pipeline = NotificationPipeline(
        transport, NameResolver(NoNames()), PendingMessageCache()
    )
    return create_webhook_app(pipeline, SECRET, "/moralis"), transport


@pytest.mark.asyncio
async def test_signed_payload_is_delivered() -> None:
    app, transport = make_app()
    async with test_utils.TestClient(test_utils.TestServer(app)) as client:
        resp = await client.post(
            "/moralis",
            data=BODY,
            headers={SIGNATURE_HEADER: compute_signature(BODY, SECRET)},
        )
        assert resp.status == 200
        assert await resp.text() == "ok"

        health = await client.get("/health")
        assert health.status == 200
        assert await health.json() == {"status": "ok", "pending": 1}

    assert len(transport.sent) == 1


@pytest.mark.asyncio
async def test_missing_signature_is_unauthorized() -> None:
    app, transport = make_app()
    async with test_utils.TestClient(test_utils.TestServer(app)) as client:
        resp = await client.post("/moralis", data=BODY)
        assert resp.status == 401
    assert transport.sent == []


@pytest.mark.asyncio
async def test_wrong_signature_is_unauthorized() -> None:
    app, transport = make_app()
    async with test_utils.TestClient(test_utils.TestServer(app)) as client:
        resp = await client.post(
            "/moralis",
            data=BODY,
            headers={SIGNATURE_HEADER: compute_signature(BODY, "wrong")},
        )
        assert resp.status == 401
    assert transport.sent == []


@pytest.mark.asyncio
async def test_invalid_json_is_bad_request() -> None:
    app, transport = make_app()
    async with test_utils.TestClient(test_utils.TestServer(app)) as client:
        resp = await client.post("/moralis", data="{not json")
        assert resp.status == 400
    assert transport.sent == []


@pytest.mark.asyncio
async def test_unsupported_chain_still_acknowledged() -> None:
    app, transport = make_app()
    body = BODY.replace('"chainId":"0x1"', '"chainId":"0x270f"')
    async with test_utils.TestClient(test_utils.TestServer(app)) as client:
        resp = await client.post(
            "/moralis",
            data=body,
            headers={SIGNATURE_HEADER: compute_signature(body, SECRET)},
        )
        assert resp.status == 200
    assert transport.sent == []
