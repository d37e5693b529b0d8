"""代币、批量调用与余额结果的数据结构。"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
DEFAULT_DECIMALS = 18


@dataclass(slots=True, frozen=True)
class TokenDescriptor:
    """代币目录中的一条记录，只读。"""

    address: str
    symbol: str
    name: str = ""
    decimals: int = DEFAULT_DECIMALS

    @property
    def is_native(self) -> bool:
        """零地址代表原生币而非合约。"""

        digits = self.address.strip().lower()
        if digits.startswith("0x"):
            digits = digits[2:]
        return len(digits) == 40 and not digits.strip("0")


@dataclass(slots=True, frozen=True)
class CallRequest:
    """批量调用中的一个子调用。"""

    target: str
    call_data: bytes


@dataclass(slots=True, frozen=True)
class CallResult:
    """子调用结果，与提交的 CallRequest 按位置一一对应。"""

    success: bool
    return_data: bytes = b""


@dataclass(slots=True, frozen=True)
class BalanceRecord:
    """成功解码且大于零的余额。"""

    symbol: str
    name: str
    address: str
    decimals: int
    amount: Decimal


@dataclass(slots=True, frozen=True)
class SkippedEntry:
    """被跳过的条目及原因。"""

    token: TokenDescriptor
    reason: str


@dataclass(slots=True)
class DecodedBatch:
    records: List[BalanceRecord] = field(default_factory=list)
    skipped: List[SkippedEntry] = field(default_factory=list)


@dataclass(slots=True)
class BalanceReport:
    """一次扫描的完整结果，交给展示层。"""

    address: str
    endpoint_url: str
    records: List[BalanceRecord]
    native_balance: Decimal
    skipped: List[SkippedEntry] = field(default_factory=list)
