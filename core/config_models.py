"""扫描配置模型：RPC 节点、钱包地址与探测超时，每次运行显式传入。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

DEFAULT_RPC = "https://bsc-dataseed.binance.org/"
DEFAULT_WALLET = "0x779ea720586d1AA4e0867dC221F7e35c18e79cD9"
MULTICALL3_ADDRESS = "0xcA11bde05977b3631167028862bE2a173976CA11"
DEFAULT_PROBE_TIMEOUT_MS = 5000
DEFAULT_TOKENS_PATH = Path(__file__).resolve().parents[1] / "storage" / "verified_tokens.json"

# 主节点也在列表中，选择时会去重
DEFAULT_FALLBACKS: List[str] = [
    "https://bsc-dataseed.binance.org/",
    "https://bsc-dataseed1.defibit.io/",
    "https://bsc-dataseed1.ninicoin.io/",
    "https://bsc-rpc.publicnode.com",
    "https://rpc.ankr.com/bsc",
]


@dataclass(slots=True)
class ScanConfig:
    """一次余额扫描所需的全部配置。"""

    rpc_url: str = DEFAULT_RPC
    fallback_urls: List[str] = field(default_factory=lambda: list(DEFAULT_FALLBACKS))
    wallet_address: str = DEFAULT_WALLET
    probe_timeout_ms: int = DEFAULT_PROBE_TIMEOUT_MS
    multicall_address: str = MULTICALL3_ADDRESS
    tokens_path: Path = DEFAULT_TOKENS_PATH
    native_symbol: str = "BNB"

    @property
    def probe_timeout(self) -> float:
        """探测超时（秒）。"""

        return self.probe_timeout_ms / 1000.0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, object]]) -> "ScanConfig":
        if not data:
            return cls()
        config = cls()
        for key, value in data.items():
            if value is None:
                continue
            if key == "fallback_urls":
                config.fallback_urls = _split_urls(value)
            elif key == "probe_timeout_ms":
                timeout_ms = int(value)  # type: ignore[arg-type]
                if timeout_ms <= 0:
                    raise ValueError(f"probe_timeout_ms must be positive, got {value!r}")
                config.probe_timeout_ms = timeout_ms
            elif key == "tokens_path":
                config.tokens_path = Path(str(value))
            elif key in ("rpc_url", "wallet_address", "multicall_address", "native_symbol"):
                setattr(config, key, str(value).strip())
            else:
                raise ValueError(f"Unknown config key: {key}")
        return config


def _split_urls(value: object) -> List[str]:
    if isinstance(value, str):
        return [u.strip() for u in value.replace("\n", ",").split(",") if u.strip()]
    return [str(u).strip() for u in value or [] if str(u).strip()]  # type: ignore[union-attr]
