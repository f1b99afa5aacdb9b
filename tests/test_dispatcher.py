"""작업 디스패처 테스트."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from support_assistant.dialog.dispatcher import ActionDispatcher
from support_assistant.dialog.models import (
    ActiveTab,
    BalanceQueryAction,
    BindPixKeyAction,
    CancelOrderAction,
    ConfirmDeliveryAction,
    Fingerprint,
    IssueType,
    NavigateAction,
    NavigateCommand,
    OpenTicketAction,
    OrderSummary,
    PixKeyQueryAction,
    SessionContext,
    ShipOrderAction,
    ShowTabAction,
    SwitchTabCommand,
    TrackOrderAction,
    WithdrawAction,
)
from support_assistant.services import PixDestination, SecurityContext, TicketRequest

PURCHASE_ID = "64b7f0c2a1d3e4f5a6b7c8d9"


@pytest.fixture
def tickets():
    service = MagicMock()
    service.open_ticket = AsyncMock(return_value={"success": True, "data": {"_id": "TICKET-1"}})
    return service


@pytest.fixture
def wallet():
    service = MagicMock()
    service.get_wallet = AsyncMock(return_value={"balance": 150.0})
    service.get_pix_key = AsyncMock(return_value={"success": True, "data": None})
    service.bind_pix_key = AsyncMock(
        return_value={"success": True, "data": {"type": "CPF", "keyMasked": "***.982.***-**", "locked": True}}
    )
    service.withdraw = AsyncMock(
        return_value={"success": True, "data": {"estimatedProcessingTime": "até 1h"}}
    )
    return service


@pytest.fixture
def purchases():
    service = MagicMock()
    service.ship = AsyncMock(return_value={"success": True})
    service.confirm = AsyncMock(return_value={"success": True, "message": "Obrigado por confirmar!"})
    service.cancel = AsyncMock(return_value={"success": False, "message": "Só é possível cancelar antes do envio."})
    return service


@pytest.fixture
def dispatcher(tickets, wallet, purchases):
    return ActionDispatcher(tickets, wallet, purchases)


@pytest.fixture
def context():
    return SessionContext(
        purchases=[OrderSummary(id=PURCHASE_ID, order_number="12345", status="shipped", title="Conta Premium")],
        fingerprint=Fingerprint(fingerprint="fp-1", components={"ua": "test"}),
    )


class TestImmediateDispatch:
    """즉시 실행 작업 테스트."""

    @pytest.mark.asyncio
    async def test_navigate(self, dispatcher, context):
        """이동 명령 반환."""
        outcome = await dispatcher.dispatch(NavigateAction("/wallet", "Abrindo sua carteira..."), context)
        assert outcome.success
        assert outcome.message == "Abrindo sua carteira..."
        assert outcome.commands == [NavigateCommand("/wallet")]

    @pytest.mark.asyncio
    async def test_show_tab(self, dispatcher, context):
        """탭 전환 명령 반환."""
        outcome = await dispatcher.dispatch(ShowTabAction(ActiveTab.TICKETS, "Abrindo seus tickets..."), context)
        assert outcome.commands == [SwitchTabCommand(ActiveTab.TICKETS)]

    @pytest.mark.asyncio
    async def test_balance(self, dispatcher, wallet, context):
        """잔액 조회."""
        outcome = await dispatcher.dispatch(BalanceQueryAction(), context)
        assert outcome.message == "Seu saldo atual é R$ 150,00."
        assert outcome.wallet_balance == 150.0
        wallet.get_wallet.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_balance_wrapped_response(self, dispatcher, wallet, context):
        """{data: {balance}} 형태 응답."""
        wallet.get_wallet.return_value = {"data": {"balance": "1234.5"}}
        outcome = await dispatcher.dispatch(BalanceQueryAction(), context)
        assert outcome.message == "Seu saldo atual é R$ 1.234,50."

    @pytest.mark.asyncio
    async def test_pix_key_unbound_offers_binding(self, dispatcher, context):
        """PIX 키 미등록이면 등록 후속 작업."""
        outcome = await dispatcher.dispatch(PixKeyQueryAction(), context)
        assert outcome.message.startswith("Nenhuma chave PIX vinculada.")
        assert isinstance(outcome.follow_up, BindPixKeyAction)

    @pytest.mark.asyncio
    async def test_pix_key_bound(self, dispatcher, wallet, context):
        """등록된 PIX 키 표시."""
        wallet.get_pix_key.return_value = {
            "success": True,
            "data": {"type": "CPF", "keyMasked": "***.982.***-**", "locked": True},
        }
        outcome = await dispatcher.dispatch(PixKeyQueryAction(), context)
        assert outcome.message == "Chave PIX: CPF ***.982.***-** (bloqueada)."
        assert outcome.pix_info.locked


class TestTicketDispatch:
    """티켓 생성 테스트."""

    @pytest.mark.asyncio
    async def test_open_ticket(self, dispatcher, tickets, context):
        """티켓 생성: 지문 첨부, 티켓 탭 전환, 목록 갱신."""
        action = OpenTicketAction(
            issue_type=IssueType.SERVICE_NOT_DELIVERED, purchase_id=PURCHASE_ID, description="Não chegou"
        )
        outcome = await dispatcher.dispatch(action, context)

        assert outcome.success
        assert outcome.commands == [SwitchTabCommand(ActiveTab.TICKETS)]
        assert outcome.refresh_tickets
        tickets.open_ticket.assert_awaited_once_with(
            PURCHASE_ID,
            TicketRequest(description="Não chegou", issue_type="service_not_delivered"),
            SecurityContext(fingerprint="fp-1", components={"ua": "test"}),
        )

    @pytest.mark.asyncio
    async def test_open_ticket_without_fingerprint(self, dispatcher, tickets):
        """지문이 없어도 생성."""
        action = OpenTicketAction(purchase_id=PURCHASE_ID)
        outcome = await dispatcher.dispatch(action, SessionContext())

        assert outcome.success
        _, request, security = tickets.open_ticket.await_args.args
        assert request.description == ""
        assert security == SecurityContext()

    @pytest.mark.asyncio
    async def test_failure_message(self, dispatcher, tickets, context):
        """실패 응답 메시지 그대로 사용."""
        tickets.open_ticket.return_value = {"success": False, "message": "Compra não encontrada."}
        outcome = await dispatcher.dispatch(OpenTicketAction(purchase_id=PURCHASE_ID), context)

        assert not outcome.success
        assert outcome.message == "Compra não encontrada."

    @pytest.mark.asyncio
    async def test_failure_fallback(self, dispatcher, tickets, context):
        """메시지 없는 실패는 기본 문구."""
        tickets.open_ticket.return_value = {"success": False}
        outcome = await dispatcher.dispatch(OpenTicketAction(purchase_id=PURCHASE_ID), context)
        assert outcome.message == "Não consegui abrir o ticket. Verifique o ID e tente novamente."

    @pytest.mark.asyncio
    async def test_exception_does_not_escape(self, dispatcher, tickets, context):
        """협력 서비스 예외는 실패 결과로 변환."""
        tickets.open_ticket.side_effect = ConnectionError("timeout")
        outcome = await dispatcher.dispatch(OpenTicketAction(purchase_id=PURCHASE_ID), context)

        assert not outcome.success
        assert outcome.message == "Não consegui abrir o ticket. Verifique o ID e tente novamente."


class TestWalletDispatch:
    """출금/PIX 등록 테스트."""

    @pytest.mark.asyncio
    async def test_withdraw_with_bound_key(self, dispatcher, wallet, context):
        """등록된 키로 출금 (키 값 없이 유형만)."""
        action = WithdrawAction(amount=50.0, pix_key_type="cpf", confirm_required=True)
        outcome = await dispatcher.dispatch(action, context)

        assert outcome.success
        assert outcome.message == "Saque solicitado com sucesso de R$ 50,00. Tempo estimado: até 1h."
        assert outcome.refresh_wallet
        wallet.withdraw.assert_awaited_once_with(
            50.0, PixDestination("cpf", None), idempotency_key=action.idempotency_key
        )

    @pytest.mark.asyncio
    async def test_withdraw_failure(self, dispatcher, wallet, context):
        """출금 실패."""
        wallet.withdraw.return_value = {"success": False, "message": "Saldo insuficiente."}
        outcome = await dispatcher.dispatch(WithdrawAction(amount=500.0, pix_key_type="cpf"), context)
        assert not outcome.success
        assert outcome.message == "Saldo insuficiente."
        assert not outcome.refresh_wallet

    @pytest.mark.asyncio
    async def test_bind_pix(self, dispatcher, wallet, context):
        """PIX 키 등록."""
        action = BindPixKeyAction(pix_key_type="cpf", pix_key="52998224725")
        outcome = await dispatcher.dispatch(action, context)

        assert outcome.message == "Chave PIX vinculada com sucesso!"
        assert outcome.pix_info.type == "CPF"
        wallet.bind_pix_key.assert_awaited_once_with("52998224725", "cpf")

    @pytest.mark.asyncio
    async def test_bind_pix_without_data(self, dispatcher, wallet, context):
        """응답에 키 정보가 없으면 마스킹해서 구성."""
        wallet.bind_pix_key.return_value = {"success": True}
        action = BindPixKeyAction(pix_key_type="cpf", pix_key="52998224725")
        outcome = await dispatcher.dispatch(action, context)
        assert outcome.pix_info.key_masked == "***.982.***-**"


class TestOrderDispatch:
    """주문 작업 테스트."""

    @pytest.mark.asyncio
    async def test_track(self, dispatcher, purchases, context):
        """추적은 외부 호출 없이 상태 표시 + 미결 주문 이동."""
        outcome = await dispatcher.dispatch(TrackOrderAction(purchase_id=PURCHASE_ID), context)

        assert outcome.message.startswith("Pedido #12345 (Conta Premium): Enviado.")
        assert outcome.commands == [NavigateCommand("/open-orders")]
        purchases.ship.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ship_default_message(self, dispatcher, purchases, context):
        """발송 표시 (응답 메시지 없으면 기본 문구)."""
        outcome = await dispatcher.dispatch(ShipOrderAction(purchase_id=PURCHASE_ID), context)
        assert outcome.message == "Envio marcado com sucesso."
        assert outcome.refresh_orders
        purchases.ship.assert_awaited_once_with(PURCHASE_ID)

    @pytest.mark.asyncio
    async def test_confirm_uses_service_message(self, dispatcher, context):
        """응답 메시지 우선."""
        outcome = await dispatcher.dispatch(ConfirmDeliveryAction(purchase_id=PURCHASE_ID), context)
        assert outcome.message == "Obrigado por confirmar!"

    @pytest.mark.asyncio
    async def test_cancel_failure(self, dispatcher, context):
        """취소 실패."""
        outcome = await dispatcher.dispatch(CancelOrderAction(purchase_id=PURCHASE_ID), context)
        assert not outcome.success
        assert outcome.message == "Só é possível cancelar antes do envio."

    @pytest.mark.asyncio
    async def test_non_dict_response(self, dispatcher, purchases, context):
        """형식이 틀린 응답은 실패."""
        purchases.ship.return_value = None
        outcome = await dispatcher.dispatch(ShipOrderAction(purchase_id=PURCHASE_ID), context)
        assert not outcome.success
        assert outcome.message == "Não foi possível marcar envio."
