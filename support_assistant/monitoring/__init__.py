"""모니터링 모듈.

Prometheus 메트릭 및 요청 추적 미들웨어를 제공합니다.
"""

from .metrics import (
    ACTIVE_SESSIONS,
    DIALOG_TURNS_TOTAL,
    DISPATCH_DURATION,
    DISPATCH_TOTAL,
    HTTP_REQUEST_DURATION,
    HTTP_REQUESTS_TOTAL,
    IGNORED_TURNS_TOTAL,
    set_app_info,
    timed_dispatch,
    track_dispatch,
    track_ignored_turn,
    track_request,
    track_turn,
)
from .middleware import PrometheusMiddleware

__all__ = [
    "ACTIVE_SESSIONS",
    "DIALOG_TURNS_TOTAL",
    "DISPATCH_DURATION",
    "DISPATCH_TOTAL",
    "HTTP_REQUEST_DURATION",
    "HTTP_REQUESTS_TOTAL",
    "IGNORED_TURNS_TOTAL",
    "set_app_info",
    "timed_dispatch",
    "track_dispatch",
    "track_ignored_turn",
    "track_request",
    "track_turn",
    "PrometheusMiddleware",
]
