from __future__ import annotations

import re
import sys
from pathlib import Path
from tempfile import gettempdir
from typing import Any

from loguru import logger

from ssh_session_pool.settings import SSHPoolSettings

# 会话池的日志会带上地址与用户名，凭据字段必须脱敏
_REDACTIONS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"(?i)\b(password|passwd|passphrase|token)(\s*[:=]\s*)([^\s,)]+)"), r"\1\2***"),
]


def _redact(text: str) -> str:
    for pattern, repl in _REDACTIONS:
        text = pattern.sub(repl, text)
    return text


def _resolve_log_dir(configured: Path) -> Path:
    try:
        configured.mkdir(parents=True, exist_ok=True)
        return configured
    except OSError:
        fallback = Path(gettempdir()) / "ssh-session-pool-logs"
        fallback.mkdir(parents=True, exist_ok=True)
        return fallback


def _patch_record(record: Any) -> None:
    record["message"] = _redact(record.get("message", ""))


def setup_logger(settings: SSHPoolSettings) -> None:
    log_dir = _resolve_log_dir(Path(settings.log_dir))

    logger.remove()
    logger.configure(patcher=_patch_record)

    common: dict[str, Any] = {"backtrace": False, "diagnose": False, "enqueue": True}

    if getattr(sys.stderr, "isatty", lambda: False)():
        logger.add(sys.stderr, level=settings.log_level, colorize=True, **common)

    for file_name, level in (("ssh_pool.log", settings.log_level), ("ssh_pool_error.log", "ERROR")):
        logger.add(
            str(log_dir / file_name),
            level=level,
            rotation=settings.log_rotation,
            retention=settings.log_retention,
            encoding="utf-8",
            **common,
        )
