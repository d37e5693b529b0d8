"""按优先级顺序探测 RPC 节点，返回第一个可用节点。

探测严格串行：主节点健康时直接返回，不再探测备用节点；最坏等待时间为
候选数 × 单次超时。
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Iterable, Optional

from connectors.rpc_client import JsonRpcClient
from core.errors import EndpointsExhaustedError
from core.event_bus import EventBus, emit
from core.events import EventType, HealthStatus, Severity
from core.health import Endpoint, EndpointPool, HealthCheckResult, build_candidates
from core.health_checker import probe_endpoint

LOGGER = logging.getLogger(__name__)

ClientFactory = Callable[[str], JsonRpcClient]
Probe = Callable[[JsonRpcClient, Endpoint, float], Awaitable[HealthCheckResult]]


@dataclass(slots=True)
class SelectedEndpoint:
    """选中的节点及其已打开的客户端，归本次扫描所有。"""

    url: str
    client: JsonRpcClient
    outcome: HealthCheckResult


def _publish(bus: Optional[EventBus], outcome: HealthCheckResult) -> None:
    emit(
        bus,
        HealthStatus(
            event_type=EventType.HEALTH_UPDATE,
            severity=Severity.INFO if outcome.ok else Severity.WARNING,
            source="selector",
            message=outcome.reason or "ok",
            endpoint=outcome.endpoint.base_url,
            healthy=outcome.ok,
            latency_ms=outcome.latency_ms,
        ),
    )


async def select_endpoint(
    primary: str,
    fallbacks: Iterable[str],
    timeout: float,
    client_factory: ClientFactory = JsonRpcClient,
    probe: Probe = probe_endpoint,
    event_bus: Optional[EventBus] = None,
) -> SelectedEndpoint:
    """依次探测主节点与备用节点；全部失败时抛出 EndpointsExhaustedError。

    返回的客户端保持打开，由调用方负责关闭；失败节点的客户端在切换前关闭。
    """

    pool = EndpointPool(build_candidates(primary, fallbacks))
    for endpoint in pool.endpoints:
        client = client_factory(endpoint.base_url)
        try:
            outcome = await probe(client, endpoint, timeout)
        except BaseException:
            await client.aclose()
            raise
        pool.record(outcome)
        _publish(event_bus, outcome)
        if outcome.ok:
            LOGGER.info("使用 RPC 节点 %s (%s, %s ms)", endpoint.base_url, endpoint.name, outcome.latency_ms)
            return SelectedEndpoint(url=endpoint.base_url, client=client, outcome=outcome)
        await client.aclose()
    raise EndpointsExhaustedError(pool.results())


@asynccontextmanager
async def open_selected_endpoint(
    primary: str,
    fallbacks: Iterable[str],
    timeout: float,
    client_factory: ClientFactory = JsonRpcClient,
    probe: Probe = probe_endpoint,
    event_bus: Optional[EventBus] = None,
) -> AsyncIterator[SelectedEndpoint]:
    """选择节点并在退出时（包括异常与取消）关闭其客户端。"""

    selected = await select_endpoint(
        primary,
        fallbacks,
        timeout,
        client_factory=client_factory,
        probe=probe,
        event_bus=event_bus,
    )
    try:
        yield selected
    finally:
        await selected.client.aclose()


__all__ = ["SelectedEndpoint", "open_selected_endpoint", "select_endpoint"]
