"""Prometheus 메트릭 정의.

대화 엔진과 호스트 API의 주요 메트릭을 정의합니다.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator

from prometheus_client import Counter, Gauge, Histogram, Info

# ============================================
# HTTP 메트릭
# ============================================

HTTP_REQUESTS_TOTAL = Counter(
    "support_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

HTTP_REQUEST_DURATION = Histogram(
    "support_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ============================================
# 대화 메트릭
# ============================================

DIALOG_TURNS_TOTAL = Counter(
    "support_dialog_turns_total",
    "Total accepted user turns",
    ["intent"],
)

IGNORED_TURNS_TOTAL = Counter(
    "support_ignored_turns_total",
    "User turns dropped while a previous turn was still running",
)

# ============================================
# 디스패치 메트릭
# ============================================

DISPATCH_TOTAL = Counter(
    "support_dispatch_total",
    "Total action dispatches",
    ["action", "status"],  # status: success, failure, error
)

DISPATCH_DURATION = Histogram(
    "support_dispatch_duration_seconds",
    "Action dispatch duration in seconds",
    ["action"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ============================================
# 시스템 메트릭
# ============================================

ACTIVE_SESSIONS = Gauge(
    "support_active_sessions",
    "Number of open support sessions",
)

APP_INFO = Info(
    "support_app",
    "Application information",
)


def set_app_info(name: str, version: str, environment: str) -> None:
    """앱 정보 설정."""
    APP_INFO.info({
        "name": name,
        "version": version,
        "environment": environment,
    })


# ============================================
# 편의 함수
# ============================================


def track_request(method: str, endpoint: str, status: int, duration: float) -> None:
    """HTTP 요청 메트릭 기록.

    Args:
        method: HTTP 메서드
        endpoint: 엔드포인트 경로
        status: HTTP 상태 코드
        duration: 요청 소요 시간 (초)
    """
    HTTP_REQUESTS_TOTAL.labels(method=method, endpoint=endpoint, status=status).inc()
    HTTP_REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)


def track_turn(intent: str) -> None:
    """수락된 사용자 턴 기록."""
    DIALOG_TURNS_TOTAL.labels(intent=intent).inc()


def track_ignored_turn() -> None:
    IGNORED_TURNS_TOTAL.inc()


def track_dispatch(action: str, status: str, duration: float) -> None:
    """디스패치 메트릭 기록.

    Args:
        action: 작업 유형 (withdraw, openTicket ...)
        status: 결과 (success, failure, error)
        duration: 소요 시간 (초)
    """
    DISPATCH_TOTAL.labels(action=action, status=status).inc()
    DISPATCH_DURATION.labels(action=action).observe(duration)


@contextmanager
def timed_dispatch(action: str) -> Iterator[dict]:
    """디스패치 시간 측정 컨텍스트 매니저.

    yield된 dict의 "status" 값을 결과로 기록합니다 (기본 error).
    """
    start_time = time.time()
    state = {"status": "error"}
    try:
        yield state
    finally:
        track_dispatch(action, state["status"], time.time() - start_time)
