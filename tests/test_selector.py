import asyncio
import gc
import sys
import time
from pathlib import Path
from typing import Dict, List

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.errors import EndpointsExhaustedError, ScanStage
from core.event_bus import EventBus
from core.events import EventType
from core.health import TIMED_OUT, Endpoint, EndpointPool, HealthCheckResult, build_candidates
from core.selector import open_selected_endpoint, select_endpoint

PRIMARY = "https://primary.example"
FALLBACKS = ["https://fb1.example", "https://fb2.example", "https://fb3.example"]


class _FakeClient:
    def __init__(self, url: str, delay: float = 0.0) -> None:
        self.url = url
        self.delay = delay
        self.closed = False

    async def chain_id(self) -> int:
        await asyncio.sleep(self.delay)
        return 56

    async def aclose(self) -> None:
        self.closed = True


class _Recorder:
    def __init__(self, healthy: set[str]) -> None:
        self.healthy = healthy
        self.probed: List[str] = []
        self.clients: Dict[str, _FakeClient] = {}

    def factory(self, url: str) -> _FakeClient:
        client = _FakeClient(url)
        self.clients[url] = client
        return client

    async def probe(self, client, endpoint: Endpoint, timeout: float) -> HealthCheckResult:
        self.probed.append(endpoint.base_url)
        if endpoint.base_url in self.healthy:
            return HealthCheckResult(endpoint=endpoint, ok=True, latency_ms=12)
        return HealthCheckResult(endpoint=endpoint, ok=False, reason=TIMED_OUT)


def _select(recorder: _Recorder, fallbacks=FALLBACKS, **kwargs):
    return asyncio.run(
        select_endpoint(PRIMARY, fallbacks, 0.5, client_factory=recorder.factory, probe=recorder.probe, **kwargs)
    )


def test_build_candidates_skips_primary_and_duplicates() -> None:
    candidates = build_candidates(PRIMARY, [PRIMARY, "https://fb1.example", " https://fb1.example ", ""])
    assert [c.base_url for c in candidates] == [PRIMARY, "https://fb1.example"]
    assert [c.priority for c in candidates] == [0, 1]
    assert candidates[0].name == "primary"


def test_healthy_primary_short_circuits() -> None:
    recorder = _Recorder(healthy={PRIMARY, *FALLBACKS})
    selected = _select(recorder)
    assert selected.url == PRIMARY
    assert recorder.probed == [PRIMARY]
    assert not selected.client.closed


@pytest.mark.parametrize("k", [1, 2, 3])
def test_first_healthy_fallback_wins(k: int) -> None:
    recorder = _Recorder(healthy=set(FALLBACKS[k - 1 :]))
    selected = _select(recorder)
    assert selected.url == FALLBACKS[k - 1]
    assert recorder.probed == [PRIMARY, *FALLBACKS[: k]]
    assert len(recorder.probed) == k + 1
    for url in recorder.probed[:-1]:
        assert recorder.clients[url].closed


def test_duplicate_primary_in_fallbacks_is_probed_once() -> None:
    recorder = _Recorder(healthy={"https://fb1.example"})
    selected = _select(recorder, fallbacks=[PRIMARY, "https://fb1.example"])
    assert selected.url == "https://fb1.example"
    assert recorder.probed == [PRIMARY, "https://fb1.example"]


def test_exhaustion_carries_one_diagnostic_per_candidate() -> None:
    recorder = _Recorder(healthy=set())
    with pytest.raises(EndpointsExhaustedError) as info:
        _select(recorder)
    err = info.value
    assert err.stage is ScanStage.ENDPOINT_SELECTION
    assert [o.endpoint.base_url for o in err.outcomes] == [PRIMARY, *FALLBACKS]
    assert all(reason == TIMED_OUT for _, reason in err.reasons())
    assert all(client.closed for client in recorder.clients.values())
    assert "endpoint_selection" in str(err)


def test_probe_events_published() -> None:
    bus = EventBus()
    seen = []
    bus.subscribe(EventType.HEALTH_UPDATE.value, seen.append)
    recorder = _Recorder(healthy={"https://fb1.example"})
    _select(recorder, event_bus=bus)
    assert [env.event.healthy for env in seen] == [False, True]
    assert seen[1].event.endpoint == "https://fb1.example"


def test_timed_out_primary_then_fast_fallback() -> None:
    clients: Dict[str, _FakeClient] = {}

    def factory(url: str) -> _FakeClient:
        clients[url] = _FakeClient(url, delay=10.0 if url == PRIMARY else 0.02)
        return clients[url]

    started = time.perf_counter()
    selected = asyncio.run(select_endpoint(PRIMARY, FALLBACKS, 0.2, client_factory=factory))
    elapsed = time.perf_counter() - started

    assert selected.url == FALLBACKS[0]
    assert selected.outcome.ok
    assert elapsed >= 0.2
    assert elapsed < 2.0
    assert clients[PRIMARY].closed
    assert set(clients) == {PRIMARY, FALLBACKS[0]}


def test_context_manager_closes_client_on_error() -> None:
    recorder = _Recorder(healthy={PRIMARY})

    async def _run() -> None:
        async with open_selected_endpoint(
            PRIMARY, FALLBACKS, 0.5, client_factory=recorder.factory, probe=recorder.probe
        ):
            raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        asyncio.run(_run())
    assert recorder.clients[PRIMARY].closed


def test_pool_results_follow_priority_order() -> None:
    candidates = build_candidates(PRIMARY, FALLBACKS)
    pool = EndpointPool(reversed(candidates))
    pool.record(HealthCheckResult(endpoint=candidates[1], ok=True, latency_ms=40))
    pool.record(HealthCheckResult(endpoint=candidates[0], ok=False, reason=TIMED_OUT))

    assert [ep.base_url for ep in pool.endpoints] == [PRIMARY, *FALLBACKS]
    assert [r.endpoint.base_url for r in pool.results()] == [PRIMARY, FALLBACKS[0]]


class _FailsWhenCancelled(_FakeClient):
    """Hangs until cancelled, then raises from its cleanup path."""

    def __init__(self, url: str) -> None:
        super().__init__(url, delay=10.0)
        self.failed_late = False

    async def chain_id(self) -> int:
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.failed_late = True
            raise RuntimeError("connection reset while closing")
        return 56


def test_late_failure_after_timeout_is_retrieved() -> None:
    contexts: List[dict] = []
    clients: Dict[str, _FakeClient] = {}

    def factory(url: str) -> _FakeClient:
        client = _FailsWhenCancelled(url) if url == PRIMARY else _FakeClient(url)
        clients[url] = client
        return client

    async def _run():
        asyncio.get_running_loop().set_exception_handler(lambda loop, ctx: contexts.append(ctx))
        selected = await select_endpoint(PRIMARY, FALLBACKS[:1], 0.02, client_factory=factory)
        await asyncio.sleep(0.05)
        gc.collect()
        await asyncio.sleep(0)
        return selected

    selected = asyncio.run(_run())
    gc.collect()

    assert selected.url == FALLBACKS[0]
    assert selected.outcome.ok
    assert clients[PRIMARY].failed_late
    assert clients[PRIMARY].closed
    assert contexts == []


def test_late_failure_on_every_endpoint_reports_timeouts() -> None:
    contexts: List[dict] = []

    async def _run():
        asyncio.get_running_loop().set_exception_handler(lambda loop, ctx: contexts.append(ctx))
        try:
            await select_endpoint(PRIMARY, FALLBACKS[:1], 0.02, client_factory=_FailsWhenCancelled)
        finally:
            await asyncio.sleep(0.05)
            gc.collect()

    with pytest.raises(EndpointsExhaustedError) as info:
        asyncio.run(_run())

    assert [o.reason for o in info.value.outcomes] == [TIMED_OUT, TIMED_OUT]
    assert contexts == []
