"""Endpoint liveness probe used by the endpoint selector."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Protocol

from core.health import TIMED_OUT, Endpoint, HealthCheckResult

LOGGER = logging.getLogger(__name__)


class ChainIdClient(Protocol):
    async def chain_id(self) -> int:
        ...


def _consume_result(task: "asyncio.Future[object]") -> None:
    # Abandoned checks may still fail after the race is decided.
    if not task.cancelled():
        task.exception()


async def probe_endpoint(client: ChainIdClient, endpoint: Endpoint, timeout: float) -> HealthCheckResult:
    """Race an ``eth_chainId`` call against a timer and report the winner.

    Whichever settles first decides the outcome. The loser is cancelled but
    not awaited, so a slow node cannot hold the caller past ``timeout`` and a
    late answer is never reported. The probe does not retry.
    """

    started = time.perf_counter()
    check = asyncio.ensure_future(client.chain_id())
    timer = asyncio.ensure_future(asyncio.sleep(timeout))
    check.add_done_callback(_consume_result)
    try:
        done, _ = await asyncio.wait({check, timer}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (check, timer):
            if not task.done():
                task.cancel()

    if check not in done:
        LOGGER.warning("Endpoint %s timed out after %.0f ms", endpoint.base_url, timeout * 1000)
        return HealthCheckResult(endpoint=endpoint, ok=False, reason=TIMED_OUT)

    exc = check.exception()
    if exc is not None:
        reason = f"{type(exc).__name__}: {exc}"
        LOGGER.warning("Endpoint %s failed probe: %s", endpoint.base_url, reason)
        return HealthCheckResult(endpoint=endpoint, ok=False, reason=reason)

    latency_ms = int(round((time.perf_counter() - started) * 1000))
    LOGGER.debug("Endpoint %s answered chain id %s in %d ms", endpoint.base_url, check.result(), latency_ms)
    return HealthCheckResult(endpoint=endpoint, ok=True, latency_ms=latency_ms)


__all__ = ["probe_endpoint"]
