"""Multicall3 ``tryAggregate`` batching for ERC-20 ``balanceOf`` reads.

The call plan is positional: the n-th :class:`CallResult` returned by
:func:`execute_batch` belongs to the n-th token of
:func:`filter_contract_tokens`.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

import httpx
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from connectors.rpc_client import JsonRpcClient, RpcError
from core.errors import BatchCallError
from core.event_bus import EventBus, emit
from core.events import EventType, Severity, SystemFaultEvent
from core.models import CallRequest, CallResult, TokenDescriptor

LOGGER = logging.getLogger(__name__)

BALANCE_OF_SELECTOR = bytes.fromhex("70a08231")
TRY_AGGREGATE_SELECTOR = bytes(Web3.keccak(text="tryAggregate(bool,(address,bytes)[])")[:4])


def encode_balance_of(owner: str) -> bytes:
    """Calldata for ``balanceOf(owner)``."""

    return BALANCE_OF_SELECTOR + encode(["address"], [Web3.to_checksum_address(owner)])


def decode_balance_of(data: bytes) -> int:
    """Decode a ``balanceOf`` return value; raises ``DecodingError`` on bad layout."""

    return decode(["uint256"], data)[0]


def filter_contract_tokens(tokens: Iterable[TokenDescriptor]) -> List[TokenDescriptor]:
    """Drop the zero-address (native currency) entries, keeping order."""

    return [token for token in tokens if token.address and not token.is_native]


def build_call_plan(tokens: Iterable[TokenDescriptor], owner: str) -> List[CallRequest]:
    """One ``balanceOf(owner)`` request per contract token, in catalogue order."""

    call_data = encode_balance_of(owner)
    return [
        CallRequest(target=Web3.to_checksum_address(token.address), call_data=call_data)
        for token in filter_contract_tokens(tokens)
    ]


def encode_try_aggregate(calls: Sequence[CallRequest], require_success: bool = False) -> bytes:
    values = [require_success, [(call.target, call.call_data) for call in calls]]
    return TRY_AGGREGATE_SELECTOR + encode(["bool", "(address,bytes)[]"], values)


def decode_try_aggregate(data: bytes) -> List[CallResult]:
    return [CallResult(success=bool(ok), return_data=bytes(ret)) for ok, ret in decode(["(bool,bytes)[]"], data)[0]]


def _fail(message: str, bus: Optional[EventBus], endpoint: str, category: str) -> BatchCallError:
    LOGGER.error("Multicall failed on %s: %s", endpoint, message)
    emit(
        bus,
        SystemFaultEvent(
            event_type=EventType.SYSTEM_FAULT,
            severity=Severity.CRITICAL,
            source="multicall",
            message=message,
            component="batch_executor",
            endpoint=endpoint,
            category=category,
        ),
    )
    return BatchCallError(message)


async def execute_batch(
    client: JsonRpcClient,
    calls: Sequence[CallRequest],
    multicall_address: str,
    event_bus: Optional[EventBus] = None,
) -> List[CallResult]:
    """Issue exactly one ``tryAggregate(false, calls)`` and align the results.

    A failing sub-call only flips its own ``success`` flag. Failure of the
    aggregate call itself raises :class:`BatchCallError` and is not retried.
    """

    if not calls:
        return []
    payload = encode_try_aggregate(calls, require_success=False)
    LOGGER.info("Calling multicall for %d tokens via %s", len(calls), client.url)
    try:
        raw = await client.eth_call(Web3.to_checksum_address(multicall_address), payload)
    except httpx.HTTPError as exc:
        raise _fail(f"tryAggregate request failed: {exc}", event_bus, client.url, "network") from exc
    except RpcError as exc:
        raise _fail(f"tryAggregate rejected: {exc}", event_bus, client.url, "rpc") from exc

    try:
        results = decode_try_aggregate(raw)
    except DecodingError as exc:
        raise _fail(f"malformed tryAggregate response: {exc}", event_bus, client.url, "decode") from exc

    if len(results) != len(calls):
        raise _fail(
            f"tryAggregate returned {len(results)} results for {len(calls)} calls",
            event_bus,
            client.url,
            "decode",
        )
    return results


__all__ = [
    "build_call_plan",
    "decode_balance_of",
    "encode_balance_of",
    "execute_batch",
    "filter_contract_tokens",
]
