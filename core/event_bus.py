"""扫描诊断事件总线：选择器与批量执行器发布，CLI 订阅并汇总。"""

from __future__ import annotations

import time
from collections import defaultdict
from typing import Callable, DefaultDict, List, Optional

from core.events import EventBase, EventEnvelope, EventType

Subscriber = Callable[[EventEnvelope], None]


class EventBus:
    """按事件类型分发诊断事件。"""

    def __init__(self) -> None:
        self._handlers: DefaultDict[EventType, List[Subscriber]] = defaultdict(list)

    def subscribe(self, event_type: EventType | str, handler: Subscriber) -> None:
        self._handlers[EventType(event_type)].append(handler)

    def publish(self, envelope: EventEnvelope) -> None:
        for handler in tuple(self._handlers.get(envelope.event.event_type, ())):
            handler(envelope)


def emit(bus: Optional[EventBus], event: EventBase) -> None:
    """bus 为空时忽略，方便可选注入。"""

    if bus is None:
        return
    bus.publish(EventEnvelope(event=event, ts=time.time()))
