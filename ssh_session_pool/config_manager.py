from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dotenv import dotenv_values

from ssh_session_pool.settings import SSHPoolSettings

if TYPE_CHECKING:
    from ssh_session_pool.session_pool import SessionPool

DEFAULT_ENV_PREFIX = "SSH_POOL_"


class ConfigManager:
    """按 JSON 配置文件 < .env < 进程环境变量 的优先级加载配置。"""

    def __init__(self, settings: SSHPoolSettings) -> None:
        self.settings = settings

    @classmethod
    def load(
        cls,
        *,
        config_file: Path | None = None,
        env_file: Path | None = None,
        env_prefix: str = DEFAULT_ENV_PREFIX,
    ) -> ConfigManager:
        config_path = config_file or Path(
            os.getenv(f"{env_prefix}CONFIG_FILE", "ssh_pool_config.json")
        )

        layers: list[dict[str, Any]] = []
        if config_path.is_file():
            layers.append(cls._read_json(config_path))

        dotenv_path = env_file if env_file is not None else Path(".env")
        if dotenv_path.exists():
            layers.append(cls._read_env(dotenv_values(dotenv_path), env_prefix))

        layers.append(cls._read_env(os.environ, env_prefix))

        merged: dict[str, Any] = {}
        for layer in layers:
            merged.update(layer)
        merged["config_file"] = config_path
        return cls(SSHPoolSettings.model_validate(merged))

    def create_pool(self) -> SessionPool:
        from ssh_session_pool.session_pool import SessionPool

        return SessionPool.from_settings(self.settings)

    @staticmethod
    def _read_json(path: Path) -> dict[str, Any]:
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
        if not isinstance(raw, dict):
            raise ValueError("配置文件必须是JSON对象")
        return raw

    @staticmethod
    def _read_env(mapping: Mapping[str, Any], env_prefix: str) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for field_name in SSHPoolSettings.model_fields:
            value = mapping.get(f"{env_prefix}{field_name.upper()}")
            if value not in (None, ""):
                data[field_name] = value
        return data
