"""대화 세션 로깅.

모든 로그 레코드에 현재 턴의 세션/사용자 ID를 붙입니다.
- 세션은 한 턴을 처리하는 동안 `log_context()` 블록 안에서 실행됩니다.
- `ContextFilter`가 핸들러 단계에서 레코드에 session_id/user_id 속성을 채웁니다.
- JSON 모드는 `JSONFormatter`, 텍스트 모드는 세션 ID가 포함된 한 줄 포맷을 사용합니다.
"""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

PLAIN_FORMAT = "%(asctime)s %(levelname)-7s [%(session_id)s] %(name)s: %(message)s"

# 컨텍스트가 없을 때 텍스트 포맷에 찍히는 값
NO_CONTEXT = "-"

session_id_var: ContextVar[Optional[str]] = ContextVar("session_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)


def get_session_id() -> Optional[str]:
    return session_id_var.get()


def get_user_id() -> Optional[str]:
    return user_id_var.get()


def current_context() -> Dict[str, str]:
    """설정된 컨텍스트 값만 모은 dict."""
    values = {"session_id": get_session_id(), "user_id": get_user_id()}
    return {k: v for k, v in values.items() if v}


@contextmanager
def log_context(session_id: Optional[str], user_id: Optional[str] = None) -> Iterator[None]:
    """블록 동안 세션/사용자 컨텍스트를 설정하고, 끝나면 이전 값으로 되돌립니다."""
    session_token = session_id_var.set(session_id)
    user_token = user_id_var.set(user_id)
    try:
        yield
    finally:
        user_id_var.reset(user_token)
        session_id_var.reset(session_token)


class ContextFilter(logging.Filter):
    """레코드에 session_id/user_id 속성 추가 (호출 시 extra로 준 값이 우선)."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = current_context()
        for name in ("session_id", "user_id"):
            if not getattr(record, name, None):
                setattr(record, name, context.get(name, NO_CONTEXT))
        return True


class JSONFormatter(logging.Formatter):
    """한 줄 JSON 포매터."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = current_context()
        for name in ("session_id", "user_id"):
            value = getattr(record, name, None) or context.get(name)
            if value and value != NO_CONTEXT:
                log_data[name] = value

        log_data.update(getattr(record, "extra_fields", {}))
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        log_data["source"] = {"module": record.module, "line": record.lineno}

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ContextLogger(logging.LoggerAdapter):
    """호출 시점의 세션 컨텍스트를 extra로 넘기는 어댑터."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**current_context(), **kwargs.get("extra", {})}
        return msg, kwargs


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """루트 로거 구성.

    기존 핸들러를 모두 교체합니다. 콘솔(stdout)은 항상, `log_file`이 있으면
    로테이션 파일 핸들러를 추가합니다.

    Returns:
        구성된 루트 로거
    """
    formatter = JSONFormatter() if json_format else logging.Formatter(PLAIN_FORMAT)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        )

    root = logging.getLogger()
    root.setLevel(level.upper())
    for handler in list(root.handlers):
        root.removeHandler(handler)

    context_filter = ContextFilter()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        root.addHandler(handler)
    return root


def get_logger(name: str) -> ContextLogger:
    return ContextLogger(logging.getLogger(name), {})
