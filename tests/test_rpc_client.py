import asyncio
import json
import sys
from pathlib import Path

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from connectors.rpc_client import JsonRpcClient, RpcError

URL = "https://rpc.example"


def _client(handler) -> JsonRpcClient:
    return JsonRpcClient(URL, http=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def _reply(result=None, error=None, status: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        payload = {"jsonrpc": "2.0", "id": body["id"]}
        if error is not None:
            payload["error"] = error
        else:
            payload["result"] = result
        return httpx.Response(status, json=payload)

    return handler


def test_chain_id_parses_hex() -> None:
    async def _run() -> int:
        async with _client(_reply("0x38")) as client:
            return await client.chain_id()

    assert asyncio.run(_run()) == 56


def test_eth_call_sends_hex_and_returns_bytes() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": "0x0102"})

    async def _run() -> bytes:
        async with _client(handler) as client:
            return await client.eth_call("0x" + "11" * 20, b"\xab\xcd")

    assert asyncio.run(_run()) == b"\x01\x02"
    assert seen[0]["method"] == "eth_call"
    assert seen[0]["params"] == [{"to": "0x" + "11" * 20, "data": "0xabcd"}, "latest"]


def test_rpc_error_object_raises() -> None:
    async def _run() -> None:
        async with _client(_reply(error={"code": -32000, "message": "execution reverted"})) as client:
            await client.eth_call("0x" + "11" * 20, b"")

    with pytest.raises(RpcError) as info:
        asyncio.run(_run())
    assert info.value.code == -32000
    assert "execution reverted" in str(info.value)


def test_http_status_raises() -> None:
    async def _run() -> None:
        async with _client(_reply("0x1", status=503)) as client:
            await client.get_balance("0x" + "11" * 20)

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(_run())


def test_non_hex_result_raises() -> None:
    async def _run() -> None:
        async with _client(_reply(12)) as client:
            await client.get_balance("0x" + "11" * 20)

    with pytest.raises(RpcError):
        asyncio.run(_run())
