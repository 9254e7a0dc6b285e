"""拨号策略模块

Dialer 负责为 (network, address, credentials) 建立底层网络连接并完成
SSH 客户端握手。连接池只依赖 Dialer 协议，默认实现基于 asyncssh，
调用方可以替换为任意满足协议的可调用对象（例如测试替身或跳板连接）。
"""
from __future__ import annotations

import asyncio
import socket
from typing import Any, Protocol

import asyncssh
from loguru import logger

from ssh_session_pool.credentials import SSHCredentials
from ssh_session_pool.exceptions import DialError
from ssh_session_pool.settings import KnownHostsPolicy

DEFAULT_SSH_PORT = 22

_NETWORK_FAMILIES: dict[str, int] = {
    "tcp": socket.AF_UNSPEC,
    "tcp4": socket.AF_INET,
    "tcp6": socket.AF_INET6,
}


class Dialer(Protocol):
    """拨号策略协议。

    timeout 为本次拨号允许的剩余时间（秒），None 表示不限时。
    返回值为已完成握手的 SSH 客户端连接，它同时拥有底层传输。
    """

    async def __call__(
        self,
        network: str,
        address: str,
        credentials: SSHCredentials,
        *,
        timeout: float | None = None,
    ) -> Any: ...


def split_host_port(address: str, default_port: int = DEFAULT_SSH_PORT) -> tuple[str, int]:
    """解析 "host:port"、"[v6]:port" 或不带端口的地址。

    Raises:
        ValueError: 地址为空或端口不是合法整数
    """
    addr = address.strip()
    if not addr:
        raise ValueError("address不能为空")

    if addr.startswith("["):
        host, sep, rest = addr[1:].partition("]")
        if not sep:
            raise ValueError(f"地址格式错误: {address}")
        if not rest:
            return host, default_port
        if not rest.startswith(":"):
            raise ValueError(f"地址格式错误: {address}")
        port_text = rest[1:]
    elif addr.count(":") == 1:
        host, port_text = addr.split(":")
    else:
        # 无端口，或未加方括号的 IPv6 字面量
        return addr, default_port

    try:
        port = int(port_text)
    except ValueError as exc:
        raise ValueError(f"端口不合法: {address}") from exc
    if not 0 < port < 65536:
        raise ValueError(f"端口不合法: {address}")
    return host, port


class AsyncSSHDialer:
    """基于 asyncssh.connect 的默认拨号实现。

    Attributes:
        known_hosts_policy: ignore 时跳过主机密钥校验，reject 时使用
            asyncssh 默认的 known_hosts 校验
        extra_options: 透传给 asyncssh.connect 的额外参数
    """

    def __init__(
        self,
        *,
        known_hosts_policy: KnownHostsPolicy = "ignore",
        extra_options: dict[str, Any] | None = None,
    ) -> None:
        self.known_hosts_policy = known_hosts_policy
        self.extra_options = dict(extra_options or {})

    async def __call__(
        self,
        network: str,
        address: str,
        credentials: SSHCredentials,
        *,
        timeout: float | None = None,
    ) -> asyncssh.SSHClientConnection:
        """建立SSH连接。

        Args:
            network: 网络类型，支持 tcp、tcp4、tcp6
            address: 目标地址
            credentials: SSH凭据
            timeout: 拨号时限（秒），None表示无超时

        Returns:
            已完成握手的SSH客户端连接

        Raises:
            DialError: 地址非法、连接失败或超时时抛出
        """
        family = _NETWORK_FAMILIES.get(network)
        if family is None:
            raise DialError(f"不支持的网络类型: {network}", host=address, details={"network": network})
        try:
            host, port = split_host_port(address)
        except ValueError as exc:
            raise DialError(str(exc), host=address) from exc

        options: dict[str, Any] = {
            "host": host,
            "port": port,
            "family": family,
            **credentials.connect_options(),
            **self.extra_options,
        }
        if self.known_hosts_policy == "ignore":
            options["known_hosts"] = None

        logger.debug("SSH拨号: {}@{}:{} ({})", credentials.username, host, port, network)
        try:
            connect_task = asyncssh.connect(**options)
            if timeout is None:
                return await connect_task
            return await asyncio.wait_for(connect_task, timeout=max(timeout, 0))
        except asyncio.TimeoutError as exc:
            raise DialError(
                f"SSH连接超时: {host}:{port}",
                host=host,
                port=port,
            ) from exc
        except Exception as exc:
            raise DialError(
                f"SSH连接失败: {host}:{port} - {exc}",
                host=host,
                port=port,
            ) from exc
