"""Command line entry point: print non-zero token balances for a wallet."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from aggregator.scan import run_balance_scan
from core.config_loader import load_scan_config
from core.config_models import ScanConfig
from core.errors import EndpointsExhaustedError, ScanError, SettingsError
from core.event_bus import EventBus
from core.events import EventEnvelope, EventType, HealthStatus, SystemFaultEvent
from core.models import BalanceReport
from storage.token_catalog import load_token_catalog

LOGGER = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="BSC token balance scanner")
    parser.add_argument("--config", type=Path, help="YAML config file")
    parser.add_argument("--env", type=Path, help=".env file with BSC_RPC / WALLET_ADDRESS")
    parser.add_argument("--rpc", help="Primary RPC endpoint")
    parser.add_argument("--fallback", action="append", help="Fallback RPC endpoint (repeatable)")
    parser.add_argument("--address", help="Wallet address to scan")
    parser.add_argument("--timeout-ms", type=int, help="Per-endpoint probe timeout in milliseconds")
    parser.add_argument("--tokens", type=Path, help="Token catalogue JSON file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ScanConfig:
    overrides = {
        "rpc_url": args.rpc,
        "fallback_urls": args.fallback,
        "wallet_address": args.address,
        "probe_timeout_ms": args.timeout_ms,
        "tokens_path": args.tokens,
    }
    return load_scan_config(config_path=args.config, env_path=args.env, overrides=overrides)


def render_report(report: BalanceReport, native_symbol: str = "BNB") -> str:
    headers = ["symbol", "address", "decimals", "balance"]
    rows: List[List[str]] = [
        [r.symbol, r.address, str(r.decimals), format(r.amount.normalize(), "f")] for r in report.records
    ]
    widths = [max(len(h), *(len(row[i]) for row in rows)) if rows else len(h) for i, h in enumerate(headers)]
    lines = ["Tokens with balance > 0:"]
    lines.append("  ".join(h.ljust(w) for h, w in zip(headers, widths)))
    lines.append("  ".join("-" * w for w in widths))
    for row in rows:
        lines.append("  ".join(cell.ljust(w) for cell, w in zip(row, widths)))
    if not rows:
        lines.append("(none)")
    lines.append(f"{native_symbol}: {format(report.native_balance.normalize(), 'f')}")
    return "\n".join(lines)


def _report_failure(exc: ScanError) -> None:
    LOGGER.error("Scan failed at stage %s: %s", exc.stage.value, exc.message)
    if isinstance(exc, EndpointsExhaustedError):
        for url, reason in exc.reasons():
            LOGGER.error("  %s rejected: %s", url, reason)


class ScanDiagnostics:
    """Collects endpoint checks and faults published during a scan and logs them."""

    def __init__(self) -> None:
        self.checks: List[HealthStatus] = []
        self.faults: List[SystemFaultEvent] = []

    def attach(self, bus: EventBus) -> None:
        bus.subscribe(EventType.HEALTH_UPDATE, self.on_health)
        bus.subscribe(EventType.SYSTEM_FAULT, self.on_fault)

    def on_health(self, envelope: EventEnvelope) -> None:
        event = envelope.event
        if not isinstance(event, HealthStatus):
            return
        self.checks.append(event)
        if event.healthy:
            LOGGER.info("Endpoint %s healthy (%s ms)", event.endpoint, event.latency_ms)
        else:
            LOGGER.warning("Endpoint %s unavailable: %s", event.endpoint, event.message)

    def on_fault(self, envelope: EventEnvelope) -> None:
        event = envelope.event
        if not isinstance(event, SystemFaultEvent):
            return
        self.faults.append(event)
        LOGGER.error("%s fault (%s) on %s: %s", event.component, event.category, event.endpoint, event.message)


async def scan(config: ScanConfig) -> BalanceReport:
    try:
        tokens = await asyncio.to_thread(load_token_catalog, config.tokens_path)
    except (OSError, ValueError) as exc:
        raise SettingsError(f"cannot load token catalogue {config.tokens_path}: {exc}") from exc

    bus = EventBus()
    diagnostics = ScanDiagnostics()
    diagnostics.attach(bus)
    report = await run_balance_scan(config, tokens, event_bus=bus)
    LOGGER.debug("%d endpoint checks, %d faults", len(diagnostics.checks), len(diagnostics.faults))
    return report


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)
    try:
        config = build_config(args)
        report = asyncio.run(scan(config))
    except ScanError as exc:
        _report_failure(exc)
        return 1
    except KeyboardInterrupt:
        LOGGER.info("Interrupted by user.")
        return 130
    print(render_report(report, config.native_symbol))
    LOGGER.info("Queried via %s", report.endpoint_url)
    return 0


if __name__ == "__main__":
    sys.exit(main())
