"""扫描流程的错误分类，每类错误都标明失败阶段。"""

from __future__ import annotations

from enum import Enum
from typing import List, Sequence

from core.health import HealthCheckResult


class ScanStage(str, Enum):
    """一次余额扫描的阶段。"""

    CONFIGURATION = "configuration"
    ADDRESS_VALIDATION = "address_validation"
    ENDPOINT_SELECTION = "endpoint_selection"
    BATCH_CALL = "batch_call"
    NATIVE_BALANCE = "native_balance"


class ScanError(Exception):
    """终止本次扫描的错误基类。"""

    stage: ScanStage

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"[{self.stage.value}] {self.message}"


class ConfigurationError(ScanError):
    """配置非法（例如钱包地址格式错误），在任何网络请求之前抛出。"""

    stage = ScanStage.ADDRESS_VALIDATION


class SettingsError(ScanError, ValueError):
    """配置文件、环境变量或代币目录无法解析。"""

    stage = ScanStage.CONFIGURATION


class EndpointsExhaustedError(ScanError):
    """所有候选节点都不可用，附带每个节点的失败原因。"""

    stage = ScanStage.ENDPOINT_SELECTION

    def __init__(self, outcomes: Sequence[HealthCheckResult]) -> None:
        self.outcomes: List[HealthCheckResult] = list(outcomes)
        detail = "; ".join(f"{o.endpoint.base_url}: {o.reason}" for o in self.outcomes)
        super().__init__(f"all endpoints exhausted ({detail or 'no candidates configured'})")

    def reasons(self) -> List[tuple[str, str]]:
        return [(o.endpoint.base_url, o.reason or "") for o in self.outcomes]


class BatchCallError(ScanError):
    """聚合调用整体失败，与单个子调用失败不同。"""

    stage = ScanStage.BATCH_CALL


class NativeBalanceError(ScanError):
    """原生币余额查询失败。"""

    stage = ScanStage.NATIVE_BALANCE


__all__ = [
    "BatchCallError",
    "ConfigurationError",
    "EndpointsExhaustedError",
    "NativeBalanceError",
    "ScanError",
    "ScanStage",
    "SettingsError",
]
