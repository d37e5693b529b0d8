"""Static token catalogue stored as JSON.

The file is a list of ``{"address", "symbol", "name", "decimals"}`` objects.
The zero address stands for the native currency and is kept here; the call
plan builder is responsible for excluding it from the multicall.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, List, Mapping, Optional

from web3 import Web3

from core.models import DEFAULT_DECIMALS, TokenDescriptor

LOGGER = logging.getLogger(__name__)

CATALOG_PATH = Path(__file__).resolve().parent / "verified_tokens.json"


def _parse_decimals(value: object) -> int:
    if value is None:
        return DEFAULT_DECIMALS
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValueError(f"decimals must be an integer, got {value!r}")
    decimals = int(value)  # type: ignore[arg-type]
    if decimals < 0:
        raise ValueError(f"decimals must be a non-negative integer, got {value!r}")
    return decimals


def _from_dict(raw: Mapping[str, object]) -> Optional[TokenDescriptor]:
    """Build one descriptor; returns None (with a log line) for unusable entries."""

    address = str(raw.get("address") or "").strip()
    symbol = str(raw.get("symbol") or address[:10])
    if not address:
        LOGGER.debug("Catalogue entry %s has no address, skipped", symbol)
        return None
    if not Web3.is_address(address):
        LOGGER.warning("Catalogue entry %s has invalid address %s, skipped", symbol, address)
        return None
    try:
        decimals = _parse_decimals(raw.get("decimals"))
    except (TypeError, ValueError) as exc:
        LOGGER.warning("Catalogue entry %s has invalid decimals, skipped: %s", symbol, exc)
        return None
    return TokenDescriptor(
        address=Web3.to_checksum_address(address),
        symbol=symbol,
        name=str(raw.get("name") or symbol),
        decimals=decimals,
    )


def parse_catalog(entries: Iterable[Mapping[str, object]]) -> List[TokenDescriptor]:
    """Build descriptors, dropping entries without a usable address or decimals."""

    tokens: List[TokenDescriptor] = []
    for raw in entries:
        token = _from_dict(raw)
        if token is not None:
            tokens.append(token)
    return tokens


def load_token_catalog(path: Path | None = None) -> List[TokenDescriptor]:
    """Load the catalogue from disk, defaulting to the bundled list."""

    catalog_path = Path(path) if path is not None else CATALOG_PATH
    data = json.loads(catalog_path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{catalog_path} must contain a JSON list")
    return parse_catalog(data)


__all__ = ["CATALOG_PATH", "load_token_catalog", "parse_catalog"]
