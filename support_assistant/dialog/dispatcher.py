"""작업 디스패처.

완료된 작업 하나를 정확히 하나의 외부 호출로 변환하고 결과를 `DispatchOutcome`으로 돌려줍니다.

- 외부 응답은 모두 `{success, message, data}`로 정규화합니다.
- 실패 응답은 ExternalServiceError로 변환한 뒤 응답 메시지로 바꾸며, 예외를 밖으로 던지지 않습니다.
- 작업 유지/삭제 정책은 상태 관리자(`DialogStateManager.complete`)가 결정합니다.
"""

from __future__ import annotations

import logging
from typing import Optional

from support_assistant.config import DialogConfig
from support_assistant.core.exceptions import ExternalServiceError
from support_assistant.monitoring.metrics import timed_dispatch
from support_assistant.services.interfaces import (
    PixDestination,
    PurchaseService,
    SecurityContext,
    ServiceResult,
    TicketRequest,
    TicketService,
    WalletService,
)

from .models import (
    ActiveTab,
    BalanceQueryAction,
    BindPixKeyAction,
    CancelOrderAction,
    ConfirmDeliveryAction,
    DispatchOutcome,
    DispatchTarget,
    NavigateAction,
    NavigateCommand,
    OpenTicketAction,
    PendingAction,
    PixInfo,
    PixKeyQueryAction,
    SessionContext,
    ShipOrderAction,
    ShowTabAction,
    SwitchTabCommand,
    TrackOrderAction,
    WithdrawAction,
)
from .validators import format_currency, mask_pix_key, translate_status

logger = logging.getLogger(__name__)

OPEN_ORDERS_PATH = "/open-orders"

_FALLBACKS = {
    OpenTicketAction: "Não consegui abrir o ticket. Verifique o ID e tente novamente.",
    WithdrawAction: "Não consegui solicitar o saque.",
    BindPixKeyAction: "Não foi possível vincular a chave PIX.",
    ShipOrderAction: "Não foi possível marcar envio.",
    ConfirmDeliveryAction: "Não foi possível confirmar o recebimento.",
    CancelOrderAction: "Não foi possível cancelar o pedido.",
    BalanceQueryAction: "Não consegui consultar seu saldo agora.",
    PixKeyQueryAction: "Não consegui consultar sua chave PIX agora.",
}
_DEFAULT_FALLBACK = "Não foi possível concluir a operação agora. Tente novamente em instantes."


def _target_name(target: DispatchTarget) -> str:
    if isinstance(target, PendingAction):
        return target.type.value
    return {
        NavigateAction: "navigate",
        ShowTabAction: "showTab",
        BalanceQueryAction: "balanceQuery",
        PixKeyQueryAction: "pixKeyQuery",
    }.get(type(target), type(target).__name__)


class ActionDispatcher:
    """작업 디스패처."""

    def __init__(
        self,
        tickets: TicketService,
        wallet: WalletService,
        purchases: PurchaseService,
        config: Optional[DialogConfig] = None,
    ):
        self.tickets = tickets
        self.wallet = wallet
        self.purchases = purchases
        self.config = config or DialogConfig()

    async def dispatch(self, target: DispatchTarget, context: SessionContext) -> DispatchOutcome:
        """작업 실행.

        Args:
            target: 완료된 PendingAction 또는 즉시 실행 작업
            context: 세션 비즈니스 데이터 (지문, 주문 목록 등)

        Returns:
            실행 결과 (실패해도 예외 없이 반환)
        """
        name = _target_name(target)
        fallback = _FALLBACKS.get(type(target), _DEFAULT_FALLBACK)

        with timed_dispatch(name) as state:
            try:
                outcome = await self._dispatch(target, context)
            except ExternalServiceError as e:
                logger.warning(f"디스패치 실패: {name} ({e.message})")
                state["status"] = "failure"
                return DispatchOutcome(success=False, message=e.message)
            except Exception as e:
                logger.error(f"디스패치 오류: {name} ({type(e).__name__}: {e})", exc_info=True)
                return DispatchOutcome(success=False, message=fallback)
            state["status"] = "success" if outcome.success else "failure"

        logger.info(f"디스패치 완료: {name} (success={outcome.success})")
        return outcome

    async def _dispatch(self, target: DispatchTarget, context: SessionContext) -> DispatchOutcome:
        if isinstance(target, NavigateAction):
            return DispatchOutcome(
                success=True, message=target.message, commands=[NavigateCommand(target.path)]
            )
        if isinstance(target, ShowTabAction):
            return DispatchOutcome(
                success=True, message=target.message, commands=[SwitchTabCommand(target.tab)]
            )
        if isinstance(target, BalanceQueryAction):
            return await self._balance()
        if isinstance(target, PixKeyQueryAction):
            return await self._pix_key()
        if isinstance(target, OpenTicketAction):
            return await self._open_ticket(target, context)
        if isinstance(target, WithdrawAction):
            return await self._withdraw(target)
        if isinstance(target, BindPixKeyAction):
            return await self._bind_pix(target)
        if isinstance(target, TrackOrderAction):
            return self._track(target, context)
        if isinstance(target, ShipOrderAction):
            return await self._order_call(
                self.purchases.ship, target, "Envio marcado com sucesso.", _FALLBACKS[ShipOrderAction]
            )
        if isinstance(target, ConfirmDeliveryAction):
            return await self._order_call(
                self.purchases.confirm, target, "Recebimento confirmado.", _FALLBACKS[ConfirmDeliveryAction]
            )
        if isinstance(target, CancelOrderAction):
            return await self._order_call(
                self.purchases.cancel, target, "Pedido cancelado.", _FALLBACKS[CancelOrderAction]
            )
        raise TypeError(f"지원하지 않는 작업: {type(target).__name__}")

    # ============================================
    # 작업별 처리
    # ============================================

    async def _balance(self) -> DispatchOutcome:
        raw = await self.wallet.get_wallet()
        balance = _read_balance(raw)
        return DispatchOutcome(
            success=True,
            message=f"Seu saldo atual é {format_currency(balance)}.",
            wallet_balance=balance,
        )

    async def _pix_key(self) -> DispatchOutcome:
        res = ServiceResult.from_raw(await self.wallet.get_pix_key())
        if res.success and res.data:
            pix = PixInfo.from_raw(res.data)
            lock = " (bloqueada)" if pix.locked else ""
            return DispatchOutcome(
                success=True,
                message=f"Chave PIX: {pix.type or 'CPF'} {pix.key_masked or '(não vinculada)'}{lock}.",
                pix_info=pix,
            )
        return DispatchOutcome(
            success=True,
            message='Nenhuma chave PIX vinculada. Posso vincular uma agora. Envie: "PIX CPF 12345678901".',
            follow_up=BindPixKeyAction(),
        )

    async def _open_ticket(self, action: OpenTicketAction, context: SessionContext) -> DispatchOutcome:
        request = TicketRequest(description=action.description or "", issue_type=action.issue_type.value)
        security = SecurityContext.from_fingerprint(context.fingerprint)
        res = ServiceResult.from_raw(await self.tickets.open_ticket(action.purchase_id, request, security))
        if not res.success:
            raise ExternalServiceError(res.message or _FALLBACKS[OpenTicketAction])
        return DispatchOutcome(
            success=True,
            message="Ticket criado com sucesso! Você pode acompanhá-lo na aba Tickets.",
            commands=[SwitchTabCommand(ActiveTab.TICKETS)],
            refresh_tickets=True,
            data=res.data,
        )

    async def _withdraw(self, action: WithdrawAction) -> DispatchOutcome:
        destination = PixDestination(pix_key_type=action.pix_key_type, pix_key=action.pix_key)
        res = ServiceResult.from_raw(
            await self.wallet.withdraw(action.amount, destination, idempotency_key=action.idempotency_key)
        )
        if not res.success:
            raise ExternalServiceError(res.message or _FALLBACKS[WithdrawAction])
        eta = res.data.get("estimatedProcessingTime") or "instante a 24h úteis"
        return DispatchOutcome(
            success=True,
            message=f"Saque solicitado com sucesso de {format_currency(action.amount)}. Tempo estimado: {eta}.",
            refresh_wallet=True,
            data=res.data,
        )

    async def _bind_pix(self, action: BindPixKeyAction) -> DispatchOutcome:
        res = ServiceResult.from_raw(await self.wallet.bind_pix_key(action.pix_key, action.pix_key_type))
        if not res.success:
            raise ExternalServiceError(res.message or _FALLBACKS[BindPixKeyAction])
        pix = PixInfo.from_raw(res.data) or PixInfo(
            type=action.pix_key_type.upper(),
            key_masked=mask_pix_key(action.pix_key, action.pix_key_type),
        )
        return DispatchOutcome(success=True, message="Chave PIX vinculada com sucesso!", pix_info=pix)

    def _track(self, action: TrackOrderAction, context: SessionContext) -> DispatchOutcome:
        order = next(
            (o for o in list(context.purchases) + list(context.sales) if o.id == action.purchase_id),
            None,
        )
        follow = "Abrindo pedidos em aberto para acompanhamento..."
        if order is not None:
            label = f"#{order.order_number}" if order.order_number else order.id
            title = f" ({order.title})" if order.title else ""
            message = f"Pedido {label}{title}: {translate_status(order.status)}. {follow}"
        else:
            message = follow
        return DispatchOutcome(
            success=True, message=message, commands=[NavigateCommand(OPEN_ORDERS_PATH)]
        )

    async def _order_call(self, call, action: PendingAction, success_text: str, fallback: str) -> DispatchOutcome:
        res = ServiceResult.from_raw(await call(action.purchase_id))
        if not res.success:
            raise ExternalServiceError(res.message or fallback)
        return DispatchOutcome(
            success=True,
            message=res.message or success_text,
            refresh_orders=True,
            data=res.data,
        )


def _read_balance(raw) -> float:
    """지갑 응답에서 잔액 추출 ({balance} 또는 {data: {balance}})."""
    if not isinstance(raw, dict):
        return 0.0
    value = raw.get("balance")
    if value is None and isinstance(raw.get("data"), dict):
        value = raw["data"].get("balance")
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0
