"""모니터링 미들웨어.

FastAPI 미들웨어로 HTTP 요청을 자동 추적합니다.
"""

from __future__ import annotations

import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .metrics import track_request


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Prometheus 메트릭 수집 미들웨어."""

    def __init__(self, app, exclude_paths: list[str] | None = None):
        """초기화.

        Args:
            app: FastAPI 앱
            exclude_paths: 제외할 경로 목록 (예: ["/metrics", "/healthz"])
        """
        super().__init__(app)
        self.exclude_paths = exclude_paths or ["/metrics", "/healthz"]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path in self.exclude_paths:
            return await call_next(request)

        start_time = time.time()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            track_request(
                method=request.method,
                endpoint=self._normalize_path(path),
                status=status_code,
                duration=time.time() - start_time,
            )
        return response

    def _normalize_path(self, path: str) -> str:
        """경로 정규화 (세션/티켓 ID를 플레이스홀더로 대체).

        예: /sessions/3f2a9c1b7d4e/messages -> /sessions/{session_id}/messages
        """
        parts = [p for p in path.split("/") if p]
        normalized = []
        for i, part in enumerate(parts):
            placeholder = _ID_PLACEHOLDERS.get(parts[i - 1]) if i > 0 else None
            normalized.append(placeholder or part)
        return "/" + "/".join(normalized)


# 경로 세그먼트 -> 다음 세그먼트(ID)의 플레이스홀더
_ID_PLACEHOLDERS = {
    "sessions": "{session_id}",
    "tickets": "{ticket_id}",
}
