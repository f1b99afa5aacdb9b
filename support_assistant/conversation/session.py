"""지원 대화 세션.

세션 하나가 대화 기록, 역할/진행 중 작업(상태 관리자), 비즈니스 데이터(SessionContext)를 소유합니다.

동시성
- 세션의 busy 플래그가 턴 전체 동안 설정되며, 그 사이 들어온 입력은 기록하지 않고 무시합니다.
- 외부 호출은 취소하지 않습니다. 호출 중 세션이 닫히면 결과를 버리고 상태를 건드리지 않습니다.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from support_assistant.config import DialogConfig
from support_assistant.core.logging import get_logger, log_context
from support_assistant.dialog.dispatcher import ActionDispatcher
from support_assistant.dialog.models import (
    ActiveTab,
    Command,
    ConversationTurn,
    DispatchOutcome,
    NavigateCommand,
    OrderSummary,
    PendingAction,
    PixInfo,
    SessionContext,
    Speaker,
    SuggestionContext,
    SwitchTabCommand,
    TicketSummary,
    TurnResult,
    UserRole,
)
from support_assistant.dialog.state_manager import DialogStateManager
from support_assistant.dialog.suggestions import compute_suggestions
from support_assistant.monitoring.metrics import track_ignored_turn, track_turn
from support_assistant.services.interfaces import ServiceResult, SupportServices

logger = get_logger(__name__)

GREETING = "Olá! Sou sua Central de Suporte. Você é comprador ou vendedor?"


def _rows(raw: Any, key: str) -> List[Dict[str, Any]]:
    """목록 응답 정규화 (list 또는 {data: {key: [...]}} / {data: [...]})."""
    if isinstance(raw, list):
        return [r for r in raw if isinstance(r, dict)]
    if isinstance(raw, dict):
        data = raw.get("data", raw)
        if isinstance(data, list):
            return [r for r in data if isinstance(r, dict)]
        if isinstance(data, dict) and isinstance(data.get(key), list):
            return [r for r in data[key] if isinstance(r, dict)]
    return []


class SupportSession:
    """지원 대화 세션."""

    def __init__(
        self,
        services: SupportServices,
        config: Optional[DialogConfig] = None,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ):
        """초기화.

        Args:
            services: 협력 서비스 묶음 (티켓, 지갑, 주문, 내비게이터, 기기 지문)
            config: 대화 설정
            session_id: 세션 ID (없으면 생성)
            user_id: 사용자 ID (로그 컨텍스트용)
        """
        self.id = session_id or uuid.uuid4().hex[:12]
        self.user_id = user_id
        self.services = services
        self.config = config or DialogConfig()
        self.state = DialogStateManager(self.config)
        self.dispatcher = ActionDispatcher(
            services.tickets, services.wallet, services.purchases, self.config
        )
        self.context = SessionContext()
        self.created_at = datetime.now(timezone.utc)
        self.busy = False
        self.closed = False
        self._turns: List[ConversationTurn] = [ConversationTurn(Speaker.BOT, GREETING)]

    # ============================================
    # 상태 조회
    # ============================================

    @property
    def role(self) -> UserRole:
        return self.state.role

    @property
    def pending_action(self) -> Optional[PendingAction]:
        return self.state.pending

    @property
    def transcript(self) -> List[ConversationTurn]:
        return list(self._turns)

    def suggestion_context(self) -> SuggestionContext:
        pending = self.state.pending
        return SuggestionContext(
            role=self.state.role,
            purchases=tuple(self.context.purchases),
            sales=tuple(self.context.sales),
            wallet_balance=self.context.wallet_balance,
            pix_info=self.context.pix_info,
            last_turn=self._turns[-1] if self._turns else None,
            active_tab=self.context.active_tab,
            pending_action=pending.snapshot() if pending is not None else None,
        )

    def suggestions(self) -> List[str]:
        return compute_suggestions(self.suggestion_context(), self.config)

    def set_active_tab(self, tab: ActiveTab) -> None:
        self.context.active_tab = tab

    # ============================================
    # 턴 처리
    # ============================================

    async def submit(self, text: str) -> TurnResult:
        """사용자 입력 처리.

        이전 턴이 아직 실행 중이거나 세션이 닫혔으면 입력을 기록하지 않고
        `accepted=False`를 반환합니다.
        """
        if self.closed:
            return TurnResult(accepted=False)
        if self.busy:
            track_ignored_turn()
            logger.info(f"처리 중인 턴이 있어 입력 무시: session={self.id}")
            return TurnResult(accepted=False, suggestions=self.suggestions())

        self.busy = True
        try:
            with log_context(self.id, self.user_id):
                return await self._run_turn(text or "")
        finally:
            self.busy = False

    async def _run_turn(self, raw: str) -> TurnResult:
        self._turns.append(ConversationTurn(Speaker.USER, raw))
        step = self.state.step(raw, self.context)
        track_turn(step.intent.value)

        replies = list(step.replies)
        commands: List[Command] = list(step.commands)

        if step.dispatch is not None:
            outcome = await self.dispatcher.dispatch(step.dispatch, self.context)
            if self.closed:
                logger.info(f"세션 종료 후 도착한 디스패치 결과 폐기: session={self.id}")
                return TurnResult(accepted=True)
            self.state.complete(step.dispatch, outcome)
            replies.append(outcome.message)
            commands += outcome.commands
            await self._apply(outcome)
            if self.closed:
                return TurnResult(accepted=True)

        for reply in replies:
            self._turns.append(ConversationTurn(Speaker.BOT, reply))
        self._run_commands(commands)
        return TurnResult(
            accepted=True,
            replies=replies,
            commands=commands,
            suggestions=self.suggestions(),
        )

    async def _apply(self, outcome: DispatchOutcome) -> None:
        """디스패치 결과의 부수 효과 반영."""
        if outcome.wallet_balance is not None:
            self.context.wallet_balance = outcome.wallet_balance
        if outcome.pix_info is not None:
            self.context.pix_info = outcome.pix_info
        for command in outcome.commands:
            if isinstance(command, SwitchTabCommand):
                self.context.active_tab = command.tab

        refreshes = []
        if outcome.refresh_wallet:
            refreshes.append(self._refresh_wallet())
        if outcome.refresh_tickets:
            refreshes.append(self._refresh_tickets())
        if outcome.refresh_orders:
            refreshes.append(self._refresh_orders())
        if refreshes:
            await asyncio.gather(*refreshes)

    def _run_commands(self, commands: List[Command]) -> None:
        navigator = self.services.navigator
        if navigator is None:
            return
        for command in commands:
            if isinstance(command, NavigateCommand):
                try:
                    navigator.navigate(command.path)
                except Exception as e:
                    logger.warning(f"페이지 이동 실패: {command.path} ({e})")

    # ============================================
    # 컨텍스트 갱신 (best effort)
    # ============================================

    async def refresh(self) -> None:
        """주문, 지갑, PIX, 티켓, 기기 지문을 미리 가져옴.

        개별 실패는 경고 로그만 남기고 나머지 데이터는 계속 갱신합니다.
        """
        await asyncio.gather(
            self._refresh_orders(),
            self._refresh_wallet(),
            self._refresh_pix(),
            self._refresh_tickets(),
            self._refresh_fingerprint(),
        )

    async def _refresh_orders(self) -> None:
        limit = self.config.orders_prefetch_limit
        try:
            purchases = await self.services.purchases.list("purchases", page=1, limit=limit)
            sales = await self.services.purchases.list("sales", page=1, limit=limit)
        except Exception as e:
            logger.warning(f"주문 목록 갱신 실패: {e}")
            return
        if self.closed:
            return
        self.context.purchases = [OrderSummary.from_raw(r) for r in _rows(purchases, "orders")]
        self.context.sales = [OrderSummary.from_raw(r) for r in _rows(sales, "orders")]

    async def _refresh_wallet(self) -> None:
        try:
            raw = await self.services.wallet.get_wallet()
        except Exception as e:
            logger.warning(f"지갑 갱신 실패: {e}")
            return
        if self.closed or not isinstance(raw, dict):
            return
        data = raw.get("data") if isinstance(raw.get("data"), dict) else raw
        balance = data.get("balance")
        try:
            self.context.wallet_balance = float(balance) if balance is not None else None
        except (TypeError, ValueError):
            logger.warning(f"잔액 형식 오류: {balance!r}")

    async def _refresh_pix(self) -> None:
        try:
            res = ServiceResult.from_raw(await self.services.wallet.get_pix_key())
        except Exception as e:
            logger.warning(f"PIX 키 갱신 실패: {e}")
            return
        if self.closed:
            return
        self.context.pix_info = PixInfo.from_raw(res.data) if res.success else None

    async def _refresh_tickets(self) -> None:
        try:
            raw = await self.services.tickets.list_tickets(page=1, limit=self.config.tickets_page_size)
        except Exception as e:
            logger.warning(f"티켓 목록 갱신 실패: {e}")
            return
        if self.closed:
            return
        self.context.tickets = [TicketSummary.from_raw(r) for r in _rows(raw, "tickets")]

    async def _refresh_fingerprint(self) -> None:
        provider = self.services.fingerprint
        if provider is None:
            return
        try:
            fingerprint = await provider.get_fingerprint()
        except Exception as e:
            # 지문이 없어도 티켓 생성은 진행
            logger.warning(f"기기 지문 수집 실패: {e}")
            return
        if not self.closed:
            self.context.fingerprint = fingerprint

    def close(self) -> None:
        """세션 종료. 진행 중인 외부 호출 결과는 이후 폐기됩니다."""
        self.closed = True
        self.state.pending = None
        logger.info(f"세션 종료: session={self.id}")
