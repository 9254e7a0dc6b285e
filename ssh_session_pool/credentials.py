from __future__ import annotations

from dataclasses import dataclass

import keyring
from keyring.errors import KeyringError

from ssh_session_pool.exceptions import CredentialError


@dataclass(frozen=True)
class SSHCredentials:
    """连接远端所需的身份信息，池中连接按 username 区分。"""

    username: str
    password: str | None = None
    private_key_path: str | None = None
    passphrase: str | None = None

    @property
    def auth_mode(self) -> str:
        if self.private_key_path and self.password:
            return "mixed"
        if self.private_key_path:
            return "key"
        if self.password:
            return "password"
        return "none"

    def connect_options(self) -> dict[str, object]:
        options: dict[str, object] = {"username": self.username}
        if self.private_key_path:
            options["client_keys"] = [self.private_key_path]
            if self.passphrase:
                options["passphrase"] = self.passphrase
        if self.password:
            options["password"] = self.password
        return options

    def __repr__(self) -> str:
        return f"SSHCredentials(username={self.username!r}, auth_mode={self.auth_mode!r})"


class CredentialStore:
    """基于系统 keyring 的凭据存取。"""

    def __init__(self, *, service_name: str = "ssh-session-pool") -> None:
        self._service_name = service_name

    def store_credentials(
        self,
        *,
        host: str,
        username: str,
        password: str | None = None,
        private_key_path: str | None = None,
        passphrase: str | None = None,
    ) -> None:
        if not password and not private_key_path:
            raise ValueError("至少提供password或private_key_path")

        try:
            if password:
                keyring.set_password(
                    self._service_name, self._key(host, username, "password"), password
                )
            if private_key_path:
                keyring.set_password(
                    self._service_name,
                    self._key(host, username, "private_key_path"),
                    private_key_path,
                )
            if passphrase:
                keyring.set_password(
                    self._service_name, self._key(host, username, "passphrase"), passphrase
                )
        except KeyringError as exc:
            raise CredentialError(
                f"凭据写入失败: {username}@{host}", host=host, username=username
            ) from exc

    def get_credentials(self, *, host: str, username: str) -> SSHCredentials:
        try:
            password = keyring.get_password(
                self._service_name, self._key(host, username, "password")
            )
            private_key_path = keyring.get_password(
                self._service_name, self._key(host, username, "private_key_path")
            )
            passphrase = keyring.get_password(
                self._service_name, self._key(host, username, "passphrase")
            )
        except KeyringError as exc:
            raise CredentialError(
                f"凭据读取失败: {username}@{host}", host=host, username=username
            ) from exc

        if not password and not private_key_path:
            raise CredentialError(
                f"未找到凭据: {username}@{host}", host=host, username=username
            )
        return SSHCredentials(
            username=username,
            password=password,
            private_key_path=private_key_path,
            passphrase=passphrase,
        )

    @staticmethod
    def _key(host: str, username: str, field: str) -> str:
        # 主机名不区分大小写，用户名区分
        return f"{host.lower()}|{username}|{field}"
