"""Configuration module for emitrpc."""

from emitrpc.config.loader import load_config, save_config, get_config_path
from emitrpc.config.schema import RpcConfig, ServerConfig, DEFAULT_TIMEOUT_MS
from emitrpc.config.access import get_config, clear_config_cache

__all__ = [
    "RpcConfig",
    "ServerConfig",
    "DEFAULT_TIMEOUT_MS",
    "load_config",
    "save_config",
    "get_config_path",
    "get_config",
    "clear_config_cache",
]
