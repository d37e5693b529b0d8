"""Configuration loader for the balance scanner.

Precedence, lowest first: built-in defaults, the YAML file, environment
variables (optionally seeded from a ``.env`` file), explicit overrides.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

from core.config_models import ScanConfig
from core.errors import SettingsError

ENV_KEYS: Dict[str, str] = {
    "BSC_RPC": "rpc_url",
    "BSC_RPC_FALLBACKS": "fallback_urls",
    "WALLET_ADDRESS": "wallet_address",
    "PROBE_TIMEOUT_MS": "probe_timeout_ms",
    "MULTICALL_ADDRESS": "multicall_address",
    "TOKENS_PATH": "tokens_path",
}


def _read_yaml(config_path: Path) -> Dict[str, object]:
    with open(config_path, "r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp.read()) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{config_path} must contain a mapping")
    return data


def _read_env() -> Dict[str, object]:
    values: Dict[str, object] = {}
    for env_key, field_name in ENV_KEYS.items():
        raw = os.getenv(env_key)
        if raw is not None and raw.strip():
            values[field_name] = raw.strip()
    return values


def load_scan_config(
    config_path: Optional[Path] = None,
    env_path: Optional[Path] = None,
    overrides: Optional[Mapping[str, object]] = None,
) -> ScanConfig:
    """Load scanner configuration from YAML, environment and overrides.

    Unreadable files and invalid values raise :class:`SettingsError`.
    """

    base_path = Path(__file__).resolve().parents[1]
    if config_path is None:
        default_config = base_path / "config.yaml"
        if default_config.exists():
            config_path = default_config
    if env_path is None:
        default_env = base_path / ".env"
        if default_env.exists():
            env_path = default_env

    if env_path is not None:
        load_dotenv(dotenv_path=env_path, override=False)

    data: Dict[str, object] = {}
    try:
        if config_path is not None:
            data.update(_read_yaml(config_path))
        data.update(_read_env())
        data.update({k: v for k, v in (overrides or {}).items() if v is not None})
        return ScanConfig.from_dict(data)
    except (OSError, yaml.YAMLError, TypeError, ValueError) as exc:
        raise SettingsError(f"invalid configuration: {exc}") from exc
