"""End-to-end balance scan: validate, select endpoint, multicall, decode."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional, Sequence

import httpx
from web3 import Web3

from aggregator.balances import decode_results, scale_amount
from connectors.multicall import build_call_plan, execute_batch, filter_contract_tokens
from connectors.rpc_client import JsonRpcClient, RpcError
from core.config_models import ScanConfig
from core.errors import ConfigurationError, NativeBalanceError
from core.event_bus import EventBus
from core.health_checker import probe_endpoint
from core.models import BalanceReport, TokenDescriptor
from core.selector import ClientFactory, Probe, open_selected_endpoint

LOGGER = logging.getLogger(__name__)

NATIVE_DECIMALS = 18


def validate_address(address: str) -> str:
    """Return the checksummed address or raise :class:`ConfigurationError`."""

    if not address or not Web3.is_address(address):
        raise ConfigurationError(
            f"wallet address {address!r} is invalid, set WALLET_ADDRESS or pass --address"
        )
    return Web3.to_checksum_address(address)


async def fetch_native_balance(client: JsonRpcClient, owner: str) -> Decimal:
    try:
        wei = await client.get_balance(owner)
    except (httpx.HTTPError, RpcError) as exc:
        raise NativeBalanceError(f"eth_getBalance failed: {exc}") from exc
    return scale_amount(wei, NATIVE_DECIMALS)


async def run_balance_scan(
    config: ScanConfig,
    tokens: Sequence[TokenDescriptor],
    client_factory: ClientFactory = JsonRpcClient,
    probe: Probe = probe_endpoint,
    event_bus: Optional[EventBus] = None,
) -> BalanceReport:
    """Run one scan; the selected endpoint's client is closed on every exit path."""

    owner = validate_address(config.wallet_address)
    contract_tokens = filter_contract_tokens(tokens)
    calls = build_call_plan(contract_tokens, owner)

    async with open_selected_endpoint(
        config.rpc_url,
        config.fallback_urls,
        config.probe_timeout,
        client_factory=client_factory,
        probe=probe,
        event_bus=event_bus,
    ) as selected:
        results = await execute_batch(selected.client, calls, config.multicall_address, event_bus=event_bus)
        decoded = decode_results(contract_tokens, results)
        native = await fetch_native_balance(selected.client, owner)

    LOGGER.info(
        "%d of %d tokens hold a balance for %s (%d skipped)",
        len(decoded.records),
        len(contract_tokens),
        owner,
        len(decoded.skipped),
    )
    return BalanceReport(
        address=owner,
        endpoint_url=selected.url,
        records=decoded.records,
        native_balance=native,
        skipped=decoded.skipped,
    )


__all__ = ["fetch_native_balance", "run_balance_scan", "validate_address"]
