"""通过会话池执行远程命令。

每条命令独占一个会话；会话结束后即关闭，底层连接留在池中复用。
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import asyncssh

from ssh_session_pool.credentials import SSHCredentials
from ssh_session_pool.exceptions import CommandExecutionError
from ssh_session_pool.session_pool import SessionPool


def _to_text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode(errors="replace")
    return value


@dataclass(frozen=True)
class CommandResult:
    address: str
    username: str
    command: str
    exit_status: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_status == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "username": self.username,
            "command": self.command,
            "exit_status": self.exit_status,
            "stdout": self.stdout,
            "stderr": self.stderr,
        }


class CommandRunner:
    def __init__(
        self,
        *,
        pool: SessionPool,
        network: str = "tcp",
        command_timeout_seconds: float | None = None,
    ) -> None:
        self._pool = pool
        self._network = network
        self._command_timeout = command_timeout_seconds

    async def run(
        self,
        *,
        address: str,
        credentials: SSHCredentials,
        command: str,
        input: str | None = None,
        check: bool = False,
    ) -> CommandResult:
        cmd = command.strip()
        if not cmd:
            raise ValueError("command不能为空")

        process = await self._pool.open_session(
            self._network, address, credentials, command=cmd, input=input
        )
        try:
            completed = await process.wait(check=False, timeout=self._command_timeout)
        except asyncssh.TimeoutError as exc:
            raise CommandExecutionError(
                f"命令执行超时: {cmd}",
                command=cmd,
                stderr=_to_text(exc.stderr),
            ) from exc
        finally:
            process.close()

        result = CommandResult(
            address=address,
            username=credentials.username,
            command=cmd,
            # 被信号终止时 exit_status 为 None
            exit_status=-1 if completed.exit_status is None else int(completed.exit_status),
            stdout=_to_text(completed.stdout),
            stderr=_to_text(completed.stderr),
        )
        if check and not result.ok:
            raise CommandExecutionError(
                f"命令执行失败: {cmd}",
                command=cmd,
                exit_status=result.exit_status,
                stderr=result.stderr,
            )
        return result

    async def run_batch(
        self,
        *,
        address: str,
        credentials: SSHCredentials,
        commands: list[str],
        check: bool = False,
    ) -> list[CommandResult]:
        results: list[CommandResult] = []
        for command in commands:
            if not command.strip():
                continue
            results.append(
                await self.run(
                    address=address, credentials=credentials, command=command, check=check
                )
            )
        return results
