from __future__ import annotations
"""FastAPI 서버 (고객지원 대화 세션).

구성
- 세션: 생성 시 주문/지갑/PIX/티켓/기기 지문을 미리 가져옴
- 메시지: 대화 엔진 한 턴 처리 → 응답, UI 명령, 추천 칩 반환
- 모니터링: /healthz, /metrics (Prometheus)
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response as StarletteResponse

from support_assistant.config import get_config
from support_assistant.conversation import (
    MessageCreate,
    SessionCreate,
    SessionManager,
    TabUpdate,
    TurnResponse,
    get_session_manager,
)
from support_assistant.conversation.manager import to_detail_response, to_session_response
from support_assistant.conversation.models import SessionDetailResponse, SessionResponse
from support_assistant.core.exceptions import AppError, NotFoundError
from support_assistant.core.logging import setup_logging
from support_assistant.monitoring import PrometheusMiddleware, set_app_info

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    cfg = get_config().app
    setup_logging(level=cfg.log_level, log_file=cfg.log_file, json_format=cfg.log_json)
    set_app_info(cfg.name, cfg.version, cfg.environment)

    yield
    get_session_manager().close_all()


app = FastAPI(title="Support Assistant API", version="1.0.0", lifespan=lifespan)

# CORS 미들웨어
# 프로덕션에서는 위젯을 호스팅하는 도메인으로 제한하세요
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Prometheus 모니터링 미들웨어
app.add_middleware(PrometheusMiddleware)


# -------- 전역 예외 핸들러 --------


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """애플리케이션 예외 핸들러."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """일반 예외 핸들러."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "INTERNAL_ERROR",
            "message": "Ocorreu um erro interno.",
        },
    )


# -------- Health / Monitoring --------


@app.get("/healthz")
async def healthz() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/metrics")
async def metrics() -> StarletteResponse:
    """Prometheus 메트릭 엔드포인트."""
    return StarletteResponse(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


@app.get("/", include_in_schema=False)
async def root() -> Dict[str, Any]:
    """루트 엔드포인트: 간단한 안내 정보 제공."""
    cfg = get_config().app
    return {
        "name": cfg.name,
        "version": cfg.version,
        "links": {
            "docs": "/docs",
            "healthz": "/healthz",
            "metrics": "/metrics",
            "sessions": "/sessions",
        },
    }


# -------- Sessions --------


@app.post("/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    req: SessionCreate,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    """새 지원 세션 시작."""
    session = await manager.create_session(user_id=req.user_id)
    return to_session_response(session)


@app.get("/sessions/{session_id}", response_model=SessionDetailResponse)
async def get_session(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionDetailResponse:
    """세션 상세 조회 (대화 기록 포함)."""
    return to_detail_response(manager.get_session(session_id))


@app.post("/sessions/{session_id}/messages", response_model=TurnResponse)
async def send_message(
    session_id: str,
    req: MessageCreate,
    manager: SessionManager = Depends(get_session_manager),
) -> TurnResponse:
    """메시지 전송 (처리 중인 턴이 있으면 accepted=false)."""
    session = manager.get_session(session_id)
    result = await session.submit(req.content)
    return TurnResponse.from_result(session.id, result)


@app.put("/sessions/{session_id}/tab", response_model=SessionResponse)
async def set_tab(
    session_id: str,
    req: TabUpdate,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    """활성 탭 변경 (추천 칩에 반영)."""
    session = manager.get_session(session_id)
    session.set_active_tab(req.tab)
    return to_session_response(session)


@app.post("/sessions/{session_id}/refresh", response_model=SessionResponse)
async def refresh_session(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    """주문/지갑/티켓 데이터 다시 가져오기."""
    session = manager.get_session(session_id)
    await session.refresh()
    return to_session_response(session)


@app.get("/sessions/{session_id}/tickets/{ticket_id}")
async def get_ticket(
    session_id: str,
    ticket_id: str,
    manager: SessionManager = Depends(get_session_manager),
) -> Dict[str, Any]:
    """티켓 상세 조회."""
    session = manager.get_session(session_id)
    ticket = await session.services.tickets.get_ticket(ticket_id)
    if not ticket:
        raise NotFoundError("Ticket não encontrado.", details={"ticket_id": ticket_id})
    return ticket


@app.delete("/sessions/{session_id}")
async def close_session(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
) -> Dict[str, str]:
    """세션 종료."""
    manager.close_session(session_id)
    return {"message": "Sessão encerrada."}


if __name__ == "__main__":
    import uvicorn

    server_cfg = get_config().app
    uvicorn.run("api:app", host=server_cfg.host, port=server_cfg.port)
