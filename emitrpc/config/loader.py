"""Read and write the JSON config file.

The file uses camelCase keys (``logLevel``, ``server.healthPath``); the
schema uses snake_case. ``EMITRPC_CONFIG`` points at an alternative file.
"""

import json
import os
import re
from pathlib import Path
from typing import Any, Callable

from loguru import logger

from emitrpc.config.schema import RpcConfig

CONFIG_PATH_ENV = "EMITRPC_CONFIG"

_UPPER = re.compile(r"(?<!^)(?=[A-Z])")


def get_config_path() -> Path:
    """``$EMITRPC_CONFIG`` if set, else ~/.emitrpc/config.json."""
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".emitrpc" / "config.json"


def load_config(config_path: Path | None = None) -> RpcConfig:
    """
    Build an RpcConfig from the config file.

    A missing file means defaults. Keys the schema does not know are logged
    and dropped. Malformed JSON or invalid values raise ValueError naming
    the file. EMITRPC_* environment variables still take precedence.
    """
    path = config_path or get_config_path()
    if not path.exists():
        return RpcConfig()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(f"top level is {type(raw).__name__}, expected an object")
        values = convert_keys(raw)
        unknown = sorted(set(values) - set(RpcConfig.model_fields))
        if unknown:
            logger.warning("Ignoring unknown config keys in {}: {}", path, ", ".join(unknown))
            for key in unknown:
                values.pop(key)
        return RpcConfig(**values)
    except ValueError as e:
        raise ValueError(f"Failed to load config from {path}: {e}") from e


def save_config(config: RpcConfig, config_path: Path | None = None) -> Path:
    """Write ``config`` as camelCase JSON and drop the cached copy. Returns the path."""
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(convert_to_camel(config.model_dump()), indent=2) + "\n", encoding="utf-8")

    from emitrpc.config.access import clear_config_cache

    clear_config_cache(config_path=path)
    return path


def camel_to_snake(name: str) -> str:
    return _UPPER.sub("_", name).lower()


def snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def convert_keys(data: Any) -> Any:
    """camelCase -> snake_case, recursively."""
    return _rekey(data, camel_to_snake)


def convert_to_camel(data: Any) -> Any:
    """snake_case -> camelCase, recursively."""
    return _rekey(data, snake_to_camel)


def _rekey(data: Any, rename: Callable[[str], str]) -> Any:
    if isinstance(data, dict):
        return {rename(key): _rekey(value, rename) for key, value in data.items()}
    if isinstance(data, list):
        return [_rekey(item, rename) for item in data]
    return data
