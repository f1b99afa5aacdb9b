"""세션 매니저.

프로세스 내 지원 세션 레지스트리입니다. 세션 간 공유 상태는 없으며,
각 세션은 생성 시 협력 서비스 묶음을 주입받습니다.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from support_assistant.config import DialogConfig, get_config
from support_assistant.core.exceptions import SessionNotFoundError
from support_assistant.monitoring.metrics import ACTIVE_SESSIONS
from support_assistant.services.interfaces import SupportServices
from support_assistant.services.mock import build_demo_services

from .models import (
    PendingActionResponse,
    SessionDetailResponse,
    SessionResponse,
    TurnMessage,
)
from .session import SupportSession

logger = logging.getLogger(__name__)

# 싱글톤 매니저
_session_manager: Optional["SessionManager"] = None


class SessionManager:
    """세션 매니저."""

    def __init__(
        self,
        services_factory: Callable[[], SupportServices] = build_demo_services,
        config: Optional[DialogConfig] = None,
    ):
        """초기화.

        Args:
            services_factory: 세션마다 호출되는 협력 서비스 생성 함수
            config: 대화 설정 (없으면 전역 설정)
        """
        self.services_factory = services_factory
        self.config = config or get_config().dialog
        self._sessions: Dict[str, SupportSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def create_session(self, user_id: Optional[str] = None) -> SupportSession:
        """세션 생성 후 비즈니스 데이터 미리 가져오기."""
        session = SupportSession(self.services_factory(), config=self.config, user_id=user_id)
        await session.refresh()
        self._sessions[session.id] = session
        ACTIVE_SESSIONS.set(len(self._sessions))
        logger.info(f"세션 생성: {session.id}")
        return session

    def get_session(self, session_id: str) -> SupportSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(details={"session_id": session_id})
        return session

    def list_sessions(self) -> List[SupportSession]:
        return list(self._sessions.values())

    def close_session(self, session_id: str) -> None:
        """세션 종료 및 제거."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(details={"session_id": session_id})
        session.close()
        ACTIVE_SESSIONS.set(len(self._sessions))

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.close_session(session_id)


def get_session_manager() -> SessionManager:
    """세션 매니저 반환."""
    global _session_manager
    if _session_manager is None:
        _session_manager = SessionManager()
    return _session_manager


def reset_session_manager() -> None:
    """싱글톤 리셋 (테스트용)."""
    global _session_manager
    if _session_manager is not None:
        _session_manager.close_all()
    _session_manager = None


def to_session_response(session: SupportSession) -> SessionResponse:
    pending = session.pending_action
    return SessionResponse(
        id=session.id,
        user_id=session.user_id,
        role=session.role.value,
        active_tab=session.context.active_tab.value,
        busy=session.busy,
        wallet_balance=session.context.wallet_balance,
        open_tickets=session.context.open_ticket_count,
        pending_action=PendingActionResponse.from_action(pending) if pending is not None else None,
        suggestions=session.suggestions(),
        created_at=session.created_at.isoformat(),
    )


def to_detail_response(session: SupportSession) -> SessionDetailResponse:
    return SessionDetailResponse(
        session=to_session_response(session),
        turns=[TurnMessage.from_turn(t) for t in session.transcript],
    )
