"""Map multicall sub-results back to human-readable token balances."""

from __future__ import annotations

import logging
from decimal import Context, Decimal
from typing import Sequence, Union

from eth_abi.exceptions import DecodingError

from connectors.multicall import decode_balance_of
from core.models import BalanceRecord, CallResult, DecodedBatch, SkippedEntry, TokenDescriptor

LOGGER = logging.getLogger(__name__)

DecodeOutcome = Union[BalanceRecord, SkippedEntry]

# uint256 has at most 78 digits
_EXACT = Context(prec=80)


def scale_amount(raw: int, decimals: int) -> Decimal:
    """``raw`` × 10^-decimals without float rounding."""

    return Decimal(raw).scaleb(-decimals, context=_EXACT)


def decode_entry(token: TokenDescriptor, result: CallResult) -> DecodeOutcome:
    """Decode one sub-result; never raises for bad data."""

    if not result.success or not result.return_data:
        LOGGER.debug("No result for %s (%s)", token.symbol, token.address)
        return SkippedEntry(token=token, reason="no result")

    try:
        raw = decode_balance_of(result.return_data)
    except DecodingError as exc:
        LOGGER.warning(
            "Skipping %s (%s): undecodable balanceOf result %s: %s",
            token.symbol,
            token.address,
            "0x" + result.return_data[:64].hex(),
            exc,
        )
        return SkippedEntry(token=token, reason=f"decode failed: {exc}")

    amount = scale_amount(raw, token.decimals)
    if amount <= 0:
        return SkippedEntry(token=token, reason="zero balance")
    return BalanceRecord(
        symbol=token.symbol,
        name=token.name,
        address=token.address,
        decimals=token.decimals,
        amount=amount,
    )


def decode_results(tokens: Sequence[TokenDescriptor], results: Sequence[CallResult]) -> DecodedBatch:
    """Pair tokens and results by position and keep only positive balances."""

    if len(tokens) != len(results):
        raise ValueError(f"{len(results)} results for {len(tokens)} tokens")

    batch = DecodedBatch()
    for token, result in zip(tokens, results):
        outcome = decode_entry(token, result)
        if isinstance(outcome, BalanceRecord):
            batch.records.append(outcome)
        else:
            batch.skipped.append(outcome)
    return batch


__all__ = ["decode_entry", "decode_results", "scale_amount"]
