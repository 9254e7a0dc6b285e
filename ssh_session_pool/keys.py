"""连接身份键的推导。

同一 (network, address, username) 三元组的调用共享一个连接；
任一字段不同则必须得到不同的键。
"""
from __future__ import annotations

import json
from typing import Protocol

from ssh_session_pool.credentials import SSHCredentials


class KeyFunc(Protocol):
    """身份键推导策略，可通过 SessionPool(key=...) 替换。"""

    def __call__(self, network: str, address: str, credentials: SSHCredentials) -> str: ...


def _quote(value: str) -> str:
    # JSON 字符串转义后不会含有未转义的引号，分隔符无法造成碰撞
    return json.dumps(value, ensure_ascii=False)


def addr_user_key(network: str, address: str, credentials: SSHCredentials) -> str:
    """默认身份键：对 network、address 与用户名分别加引号后以空格拼接。

    Args:
        network: 网络类型，如 "tcp"
        address: 目标地址，如 "10.0.0.1:22"
        credentials: SSH凭据，仅使用其中的 username

    Returns:
        稳定且单射的身份键字符串
    """
    return " ".join(_quote(part) for part in (network, address, credentials.username))
