"""세션 매니저 테스트."""

import pytest

from support_assistant.config import DialogConfig
from support_assistant.conversation import (
    SessionManager,
    SupportSession,
    get_session_manager,
    reset_session_manager,
)
from support_assistant.conversation.manager import to_detail_response, to_session_response
from support_assistant.core.exceptions import SessionNotFoundError


class TestGetSessionManager:
    """get_session_manager 테스트."""

    def test_singleton(self):
        """싱글톤 패턴."""
        assert get_session_manager() is get_session_manager()

    def test_reset(self):
        """리셋 후 새 인스턴스."""
        first = get_session_manager()
        reset_session_manager()
        assert get_session_manager() is not first


class TestSessionManager:
    """SessionManager 테스트."""

    def test_custom_factory_and_config(self, services):
        """서비스 팩토리/설정 주입."""
        config = DialogConfig(max_suggestions=4)
        manager = SessionManager(services_factory=lambda: services, config=config)

        assert manager.config is config
        assert manager.services_factory() is services

    @pytest.mark.asyncio
    async def test_create_session(self, services):
        """세션 생성 및 프리페치."""
        manager = SessionManager(services_factory=lambda: services)
        session = await manager.create_session(user_id="user_001")

        assert isinstance(session, SupportSession)
        assert session.user_id == "user_001"
        assert session.context.wallet_balance == 150.0
        assert manager.get_session(session.id) is session
        assert len(manager) == 1

    @pytest.mark.asyncio
    async def test_sessions_are_isolated(self):
        """세션마다 별도 서비스/상태."""
        manager = SessionManager()
        first = await manager.create_session()
        second = await manager.create_session()

        await first.submit("Sou comprador")

        assert first.id != second.id
        assert first.services is not second.services
        assert second.role.value == "unset"
        assert len(manager.list_sessions()) == 2

    def test_get_missing_session(self):
        """없는 세션 조회."""
        manager = SessionManager()
        with pytest.raises(SessionNotFoundError) as exc_info:
            manager.get_session("missing")
        assert exc_info.value.details == {"session_id": "missing"}

    @pytest.mark.asyncio
    async def test_close_session(self, services):
        """세션 종료."""
        manager = SessionManager(services_factory=lambda: services)
        session = await manager.create_session()
        manager.close_session(session.id)

        assert session.closed
        assert len(manager) == 0
        with pytest.raises(SessionNotFoundError):
            manager.close_session(session.id)

    @pytest.mark.asyncio
    async def test_close_all(self):
        """모든 세션 종료."""
        manager = SessionManager()
        sessions = [await manager.create_session() for _ in range(3)]
        manager.close_all()

        assert len(manager) == 0
        assert all(s.closed for s in sessions)


class TestResponses:
    """응답 변환 테스트."""

    @pytest.mark.asyncio
    async def test_session_response(self, bound_services, make_session):
        """세션 응답 (진행 중 작업 요약 포함)."""
        session = await make_session(bound_services, role="buyer")
        await session.submit("Sacar R$ 50,00")
        response = to_session_response(session)

        assert response.role == "buyer"
        assert response.wallet_balance == 150.0
        assert response.pending_action.type == "withdraw"
        assert response.pending_action.confirmation_prompted
        assert response.suggestions[:2] == ["Sim", "Não"]

    @pytest.mark.asyncio
    async def test_detail_response(self, services, make_session):
        """대화 기록 포함."""
        session = await make_session(services)
        await session.submit("Sou vendedor")
        detail = to_detail_response(session)

        assert [t.speaker for t in detail.turns] == ["bot", "user", "bot"]
        assert detail.turns[1].text == "Sou vendedor"
        assert detail.session.pending_action is None
