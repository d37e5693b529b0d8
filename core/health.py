"""RPC 候选节点与健康检查结果。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

TIMED_OUT = "timed out"


@dataclass(slots=True, frozen=True)
class Endpoint:
    """单个候选 RPC 节点，priority 越小越先探测。"""

    name: str
    base_url: str
    priority: int = 0


@dataclass(slots=True, frozen=True)
class HealthCheckResult:
    """一次探测的结果，创建后不再修改。"""

    endpoint: Endpoint
    ok: bool
    latency_ms: Optional[int] = None
    reason: Optional[str] = None

    @property
    def timed_out(self) -> bool:
        return not self.ok and self.reason == TIMED_OUT


def build_candidates(primary: str, fallbacks: Iterable[str] = ()) -> List[Endpoint]:
    """主节点优先，其后按顺序追加备用节点，跳过与主节点相同或重复的地址。"""

    seen: set[str] = set()
    candidates: List[Endpoint] = []
    for url in [primary, *fallbacks]:
        url = (url or "").strip()
        if not url or url in seen:
            continue
        seen.add(url)
        name = "primary" if not candidates else f"fallback-{len(candidates)}"
        candidates.append(Endpoint(name=name, base_url=url, priority=len(candidates)))
    return candidates


class EndpointPool:
    """按优先级排列的候选节点，记录每个节点最近一次探测结果。"""

    def __init__(self, endpoints: Iterable[Endpoint]) -> None:
        self._endpoints: List[Endpoint] = sorted(list(endpoints), key=lambda e: e.priority)
        self._results: Dict[str, HealthCheckResult] = {}

    @property
    def endpoints(self) -> List[Endpoint]:
        return list(self._endpoints)

    def record(self, result: HealthCheckResult) -> None:
        """保存探测结果，供日志与诊断使用。"""

        self._results[result.endpoint.base_url] = result

    def results(self) -> List[HealthCheckResult]:
        """按优先级返回已探测节点的结果。"""

        return [self._results[ep.base_url] for ep in self._endpoints if ep.base_url in self._results]

