"""Connector utilities for EVM JSON-RPC nodes."""

from .multicall import build_call_plan, execute_batch, filter_contract_tokens
from .rpc_client import JsonRpcClient, RpcError

__all__ = [
    "JsonRpcClient",
    "RpcError",
    "build_call_plan",
    "execute_batch",
    "filter_contract_tokens",
]
