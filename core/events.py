"""事件定义：节点探测与批量调用的诊断信息。

选择器、批量执行器与 CLI 通过共享的类型通信，而不是零散的字典。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional


class EventType(str, Enum):
    """事件的顶层分类。"""

    HEALTH_UPDATE = "health_update"
    SYSTEM_FAULT = "system_fault"


class Severity(str, Enum):
    """事件严重程度。"""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(slots=True)
class EventBase:
    """所有事件共享的公共字段。"""

    event_type: EventType
    severity: Severity
    source: str
    message: str
    detail: Mapping[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class HealthStatus(EventBase):
    """单次探测的遥测事件。"""

    endpoint: str = ""
    healthy: bool = True
    latency_ms: Optional[int] = None


@dataclass(slots=True)
class SystemFaultEvent(EventBase):
    """扫描阶段失败事件，category 区分 network / rpc / decode。"""

    component: str = ""
    endpoint: Optional[str] = None
    category: str = ""


@dataclass(slots=True)
class EventEnvelope:
    """事件包裹体，携带时间戳。"""

    event: EventBase
    ts: float
    id: Optional[str] = None
