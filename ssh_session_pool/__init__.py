"""SSH 会话池

多个并发调用方共享少量SSH连接来打开远程命令执行会话。

示例::

    creds = SSHCredentials(username="deploy", password="...")
    process = await open_session("tcp", "10.0.0.1:22", creds, command="ls")
    completed = await process.wait()
"""

from ssh_session_pool.credentials import CredentialStore, SSHCredentials
from ssh_session_pool.dialer import AsyncSSHDialer, Dialer
from ssh_session_pool.exceptions import (
    CommandExecutionError,
    CredentialError,
    DialError,
    SessionOpenError,
    SessionTimeoutError,
    SSHPoolError,
)
from ssh_session_pool.keys import KeyFunc, addr_user_key
from ssh_session_pool.session_pool import SessionPool, default_pool, open_session

__version__ = "0.1.0"

__all__ = [
    "AsyncSSHDialer",
    "CommandExecutionError",
    "CredentialError",
    "CredentialStore",
    "DialError",
    "Dialer",
    "KeyFunc",
    "SSHCredentials",
    "SSHPoolError",
    "SessionOpenError",
    "SessionPool",
    "SessionTimeoutError",
    "addr_user_key",
    "default_pool",
    "open_session",
]
