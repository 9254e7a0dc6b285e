"""SSH 会话池配置设置模块

使用 Pydantic Settings 管理配置，支持以下配置方式（优先级从高到低）：
1. 环境变量（前缀：SSH_POOL_）
2. .env 文件
3. 默认值

示例环境变量：
    SSH_POOL_LOG_LEVEL=DEBUG
    SSH_POOL_SESSION_TIMEOUT_SECONDS=5
    SSH_POOL_KNOWN_HOSTS_POLICY=reject
"""
from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known hosts 策略类型
KnownHostsPolicy = Literal["ignore", "reject"]


class SSHPoolSettings(BaseSettings):
    """SSH 会话池配置类。

    支持通过环境变量、.env文件或默认值进行配置。
    环境变量前缀为 SSH_POOL_。
    """

    model_config = SettingsConfigDict(env_prefix="SSH_POOL_", extra="ignore")

    # 配置文件路径
    config_file: Path = Field(default=Path("ssh_pool_config.json"))

    # 日志配置
    log_level: str = Field(default="INFO", description="日志级别")
    log_dir: Path = Field(default=Path("logs"), description="日志目录")
    log_rotation: str = Field(default="10 MB", description="日志轮转大小")
    log_retention: str = Field(default="30 days", description="日志保留时间")

    # 会话池配置
    session_timeout_seconds: float = Field(
        default=0, ge=0, description="open_session 总超时时间(秒)，0 表示不限"
    )

    # SSH 安全配置
    known_hosts_policy: KnownHostsPolicy = Field(
        default="ignore",
        description="Known hosts 策略: ignore(忽略), reject(校验失败即拒绝)"
    )
