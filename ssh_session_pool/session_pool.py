"""SSH会话池管理模块

多个并发调用方通过少量共享的SSH连接获取命令执行会话，支持：
- 按 网络类型+地址+用户名 维度的连接复用
- 同一身份键的单飞拨号（并发调用方共享同一次拨号结果）
- 会话打开失败时剔除连接并在同一次调用内重新拨号
- 调用方配置的总超时，首次尝试使用一半剩余时间，后续尝试使用全部剩余时间
"""
from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger

from ssh_session_pool.credentials import SSHCredentials
from ssh_session_pool.dialer import AsyncSSHDialer, Dialer
from ssh_session_pool.exceptions import DialError, SessionOpenError, SessionTimeoutError
from ssh_session_pool.keys import KeyFunc, addr_user_key
from ssh_session_pool.settings import SSHPoolSettings

SessionFactory = Callable[..., Awaitable[Any]]


async def create_process_session(client: Any, **session_options: Any) -> Any:
    """默认会话工厂：在连接上打开一个 SSHClientProcess。

    不传 command 时请求交互式 shell。
    """
    return await client.create_process(**session_options)


@dataclass(eq=False)
class ConnectionEntry:
    """池化连接条目。

    client 与 error 只在 ready 完成前由拨号方写入一次，之后只读。
    条目以对象身份比较，剔除时据此避免误删其他调用方新装入的条目。

    Attributes:
        key: 身份键
        ready: 拨号完成信号，成功或失败都只完成一次
        client: SSH客户端连接，拨号失败时为None
        error: 拨号失败时的异常
    """

    key: str
    ready: asyncio.Future[None]
    client: Any = None
    error: BaseException | None = None
    _closed: bool = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """关闭连接（幂等，只有第一次调用真正关闭）。"""
        if self._closed or self.client is None:
            return
        self._closed = True
        await _close_quietly(self.client)


async def _close_quietly(client: Any) -> None:
    try:
        client.close()
        await client.wait_closed()
    except Exception:
        return


class SessionPool:
    """异步SSH会话池。

    Attributes:
        timeout: open_session 的总超时时间（秒），None表示不限
    """

    def __init__(
        self,
        *,
        dialer: Dialer | None = None,
        key: KeyFunc | None = None,
        timeout: float | None = None,
        session_factory: SessionFactory | None = None,
        time_provider: Callable[[], float] = time.monotonic,
    ) -> None:
        """初始化会话池。

        Args:
            dialer: 拨号策略，None时使用 AsyncSSHDialer
            key: 身份键推导策略，None时使用 addr_user_key
            timeout: 总超时时间（秒），None或0表示不限
            session_factory: 会话工厂，None时在连接上打开 SSHClientProcess
            time_provider: 单调时间函数，用于测试注入
        """
        if timeout is not None and timeout < 0:
            raise ValueError("timeout不能为负数")
        self._dialer: Dialer = dialer or AsyncSSHDialer()
        self._key: KeyFunc = key or addr_user_key
        self.timeout = timeout or None
        self._session_factory = session_factory or create_process_session
        self._time = time_provider

        self._lock = asyncio.Lock()
        self._table: dict[str, ConnectionEntry] = {}

    @classmethod
    def from_settings(cls, settings: SSHPoolSettings, **kwargs: Any) -> SessionPool:
        kwargs.setdefault("dialer", AsyncSSHDialer(known_hosts_policy=settings.known_hosts_policy))
        kwargs.setdefault("timeout", settings.session_timeout_seconds)
        return cls(**kwargs)

    def __len__(self) -> int:
        return len(self._table)

    def keys(self) -> list[str]:
        return list(self._table)

    async def open_session(
        self,
        network: str,
        address: str,
        credentials: SSHCredentials,
        **session_options: Any,
    ) -> Any:
        """在目标服务器上打开新会话，尽可能复用已有连接。

        没有可用连接或会话打开失败时会重新拨号。拨号失败直接抛出拨号异常，
        不在本次调用内重试；会话打开失败则剔除连接后重试，直到成功或超过总超时。

        Args:
            network: 网络类型，如 "tcp"
            address: 目标地址，如 "10.0.0.1:22"
            credentials: SSH凭据
            **session_options: 透传给会话工厂的参数（默认即 create_process 的参数）

        Returns:
            会话对象，默认为 asyncssh.SSHClientProcess

        Raises:
            DialError: 默认拨号器拨号失败时抛出（自定义拨号器的异常原样抛出）
            SessionOpenError: 超过总超时后抛出最近一次的会话打开错误
        """
        deadline = None if self.timeout is None else self._time() + self.timeout
        key = self._key(network, address, credentials)
        first_attempt = True

        while True:
            entry = await self._get_conn(
                key, network, address, credentials, timeout=self._remaining(deadline)
            )
            if entry.error is not None:
                await self._remove_conn(key, entry)
                raise entry.error

            attempt_timeout = self._attempt_timeout(deadline, first_attempt=first_attempt)
            first_attempt = False

            try:
                return await self._new_session(entry, attempt_timeout, session_options)
            except SessionOpenError as exc:
                last_error = exc

            await self._remove_conn(key, entry)
            await entry.close()
            if deadline is not None and self._time() >= deadline:
                raise last_error

    async def close_all(self) -> None:
        """清空连接表并关闭所有连接。

        正在拨号的条目会在拨号完成后关闭。
        """
        async with self._lock:
            entries = list(self._table.values())
            self._table.clear()

        await asyncio.gather(
            *[self._close_when_ready(entry) for entry in entries],
            return_exceptions=True,
        )

    def _remaining(self, deadline: float | None) -> float | None:
        if deadline is None:
            return None
        return max(deadline - self._time(), 0.0)

    def _attempt_timeout(self, deadline: float | None, *, first_attempt: bool) -> float | None:
        remaining = self._remaining(deadline)
        if remaining is not None and first_attempt:
            # 预留一半时间给可能的重新拨号与重试
            return remaining / 2
        return remaining

    async def _get_conn(
        self,
        key: str,
        network: str,
        address: str,
        credentials: SSHCredentials,
        *,
        timeout: float | None,
    ) -> ConnectionEntry:
        """获取身份键对应的连接条目，不存在时拨号创建。

        同一身份键同时只有一次拨号在进行，其余调用方等待其完成信号并
        观察到相同的结果。拨号在锁外进行，不阻塞其他身份键。

        Args:
            key: 身份键
            network: 网络类型
            address: 目标地址
            credentials: SSH凭据
            timeout: 剩余时限（秒），负责拨号时传给拨号器，等待他人拨号时限制等待时间

        Returns:
            已完成拨号的连接条目，调用方需检查 error
        """
        async with self._lock:
            entry = self._table.get(key)
            if entry is None:
                entry = ConnectionEntry(key=key, ready=asyncio.get_running_loop().create_future())
                self._table[key] = entry
                dialing = True
            else:
                dialing = False

        if not dialing:
            # 等待方被取消不能取消共享的完成信号
            waiting = asyncio.shield(entry.ready)
            if timeout is None:
                await waiting
                return entry
            try:
                await asyncio.wait_for(waiting, timeout=timeout)
            except asyncio.TimeoutError as exc:
                logger.warning("等待拨号超时: {} (时限 {}s)", key, timeout)
                raise DialError(f"等待拨号超时: {address}", host=address) from exc
            return entry

        logger.debug("会话池拨号: {}", key)
        try:
            client = await self._dialer(network, address, credentials, timeout=timeout)
        except Exception as exc:
            logger.warning("会话池拨号失败: {} - {}", key, exc)
            entry.error = exc
        except BaseException:
            entry.error = DialError(f"拨号被中断: {address}", host=address)
            # 拨号方已被取消，无法再等待锁；此处同步删除，期间不会切换任务
            if self._table.get(key) is entry:
                del self._table[key]
            raise
        else:
            entry.client = client
        finally:
            entry.ready.set_result(None)
        return entry

    async def _remove_conn(self, key: str, entry: ConnectionEntry) -> bool:
        """仅当表中当前条目就是 entry 本身时才删除。"""
        async with self._lock:
            if self._table.get(key) is entry:
                del self._table[key]
                return True
            return False

    async def _new_session(
        self,
        entry: ConnectionEntry,
        timeout: float | None,
        session_options: dict[str, Any],
    ) -> Any:
        try:
            opening = self._session_factory(entry.client, **session_options)
            if timeout is None:
                return await opening
            # 超时后 wait_for 会取消未完成的尝试，连接随后被关闭，迟到的结果被丢弃
            return await asyncio.wait_for(opening, timeout=timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("打开会话超时，剔除连接后重试: {} (时限 {}s)", entry.key, timeout)
            raise SessionTimeoutError(
                f"打开会话超时: {entry.key}",
                key=entry.key,
                timeout=timeout,
            ) from exc
        except Exception as exc:
            logger.warning("打开会话失败，剔除连接后重试: {} - {}", entry.key, exc)
            raise SessionOpenError(
                f"打开会话失败: {entry.key} - {exc}",
                key=entry.key,
            ) from exc

    @staticmethod
    async def _close_when_ready(entry: ConnectionEntry) -> None:
        await asyncio.shield(entry.ready)
        await entry.close()


default_pool = SessionPool()


async def open_session(
    network: str,
    address: str,
    credentials: SSHCredentials,
    **session_options: Any,
) -> Any:
    """使用进程内共享的 default_pool 打开会话。"""
    return await default_pool.open_session(network, address, credentials, **session_options)
