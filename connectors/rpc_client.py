"""Minimal JSON-RPC 2.0 client for EVM nodes.

Only the three methods the balance scanner needs are wrapped: ``eth_chainId``
for liveness probes, ``eth_call`` for the multicall and ``eth_getBalance`` for
the native balance. The underlying :class:`httpx.AsyncClient` can be injected
so tests never touch the network.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, List, Optional

import httpx

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class RpcError(RuntimeError):
    """The node answered with a JSON-RPC error object or an unusable payload."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message if code is None else f"{code}: {message}")
        self.code = code


def _to_hex(data: bytes) -> str:
    return "0x" + data.hex()


def _from_hex(value: Any) -> bytes:
    if not isinstance(value, str) or not value.startswith("0x"):
        raise RpcError(f"expected hex string, got {value!r}")
    try:
        return bytes.fromhex(value[2:])
    except ValueError as exc:
        raise RpcError(f"invalid hex payload: {value[:80]}") from exc


def _hex_to_int(value: Any) -> int:
    if not isinstance(value, str) or not value.startswith("0x"):
        raise RpcError(f"expected hex quantity, got {value!r}")
    try:
        return int(value, 16)
    except ValueError as exc:
        raise RpcError(f"invalid hex quantity: {value!r}") from exc


class JsonRpcClient:
    """JSON-RPC client bound to a single endpoint URL."""

    def __init__(
        self,
        url: str,
        http: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.url = url
        self._http = http or httpx.AsyncClient(
            timeout=timeout, headers={"Content-Type": "application/json"}
        )
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "JsonRpcClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Send one request and return its ``result`` member.

        Raises :class:`httpx.HTTPError` for transport/status failures and
        :class:`RpcError` for JSON-RPC level errors.
        """

        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []}
        LOGGER.debug("POST %s %s", self.url, method)
        resp = await self._http.post(self.url, json=payload)
        resp.raise_for_status()
        try:
            data = resp.json()
        except ValueError as exc:
            raise RpcError(f"invalid JSON from {self.url}: {resp.text[:160]}") from exc
        if not isinstance(data, dict):
            raise RpcError(f"unexpected response shape from {self.url}")
        if data.get("error"):
            error = data["error"]
            if isinstance(error, dict):
                raise RpcError(str(error.get("message", error)), code=error.get("code"))
            raise RpcError(str(error))
        if "result" not in data:
            raise RpcError(f"response from {self.url} has no result")
        return data["result"]

    async def chain_id(self) -> int:
        return _hex_to_int(await self.request("eth_chainId"))

    async def eth_call(self, to: str, data: bytes, block: str = "latest") -> bytes:
        result = await self.request("eth_call", [{"to": to, "data": _to_hex(data)}, block])
        return _from_hex(result)

    async def get_balance(self, address: str, block: str = "latest") -> int:
        return _hex_to_int(await self.request("eth_getBalance", [address, block]))

    async def aclose(self) -> None:
        await self._http.aclose()


__all__ = ["JsonRpcClient", "RpcError"]
