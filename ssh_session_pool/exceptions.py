"""SSH 会话池自定义异常模块

定义连接池中使用的所有自定义异常类，提供结构化的错误处理。
异常层次结构：
    SSHPoolError (基类)
    ├── DialError               - 建立连接/握手失败或拨号超时
    ├── SessionOpenError        - 在已建立的连接上打开会话失败
    │   └── SessionTimeoutError - 打开会话超过单次尝试的时限
    ├── CommandExecutionError   - 远程命令执行失败或超时
    └── CredentialError         - 凭据相关错误
"""
from __future__ import annotations


class SSHPoolError(Exception):
    """SSH 会话池基础异常类。

    所有自定义异常的基类，提供统一的错误消息格式。

    Attributes:
        message: 用户友好的错误描述信息
        details: 可选的附加错误详情字典
    """

    def __init__(self, message: str, *, details: dict[str, object] | None = None) -> None:
        """初始化基础异常。

        Args:
            message: 用户友好的错误描述信息
            details: 可选的附加错误详情
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_error_dict(self) -> dict[str, object]:
        """将异常转换为结构化的错误字典。

        Returns:
            包含error_type、message和details的字典
        """
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class DialError(SSHPoolError):
    """拨号错误。

    当网络连接建立失败、SSH握手失败或拨号超时时抛出。
    拨号错误不会被缓存，失败的条目会立即从池中剔除。

    Attributes:
        host: 目标主机地址
        port: 目标SSH端口
    """

    def __init__(
        self,
        message: str,
        *,
        host: str = "",
        port: int = 22,
        details: dict[str, object] | None = None,
    ) -> None:
        merged_details = {"host": host, "port": port, **(details or {})}
        super().__init__(message, details=merged_details)
        self.host = host
        self.port = port


class SessionOpenError(SSHPoolError):
    """会话打开错误。

    连接可用但创建会话失败（传输已断开、协议层拒绝等）。
    连接池将其视为瞬时错误：剔除连接后在同一次调用内重试。

    Attributes:
        key: 出错连接的身份键
    """

    def __init__(
        self,
        message: str,
        *,
        key: str = "",
        details: dict[str, object] | None = None,
    ) -> None:
        merged_details = {"key": key, **(details or {})}
        super().__init__(message, details=merged_details)
        self.key = key


class SessionTimeoutError(SessionOpenError):
    """会话打开超时错误。

    Attributes:
        key: 出错连接的身份键
        timeout: 本次尝试的时限（秒）
    """

    def __init__(
        self,
        message: str,
        *,
        key: str = "",
        timeout: float | None = None,
        details: dict[str, object] | None = None,
    ) -> None:
        merged_details = {"timeout": timeout, **(details or {})}
        super().__init__(message, key=key, details=merged_details)
        self.timeout = timeout


class CommandExecutionError(SSHPoolError):
    """命令执行错误。

    当远程命令执行超时，或要求检查退出码而命令以非零状态结束时抛出。

    Attributes:
        command: 执行失败的命令
        exit_status: 命令退出状态码
        stderr: 标准错误输出
    """

    def __init__(
        self,
        message: str,
        *,
        command: str = "",
        exit_status: int = -1,
        stderr: str = "",
        details: dict[str, object] | None = None,
    ) -> None:
        merged_details = {
            "command": command,
            "exit_status": exit_status,
            "stderr": stderr,
            **(details or {}),
        }
        super().__init__(message, details=merged_details)
        self.command = command
        self.exit_status = exit_status
        self.stderr = stderr


class CredentialError(SSHPoolError):
    """凭据错误。

    当凭据缺失、无效或keyring操作失败时抛出。

    Attributes:
        host: 关联的主机地址
        username: 关联的用户名
    """

    def __init__(
        self,
        message: str,
        *,
        host: str = "",
        username: str = "",
        details: dict[str, object] | None = None,
    ) -> None:
        merged_details = {"host": host, "username": username, **(details or {})}
        super().__init__(message, details=merged_details)
        self.host = host
        self.username = username
