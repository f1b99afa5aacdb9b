"""빠른 답변(추천 칩) 생성 모듈.

`SuggestionContext`만 보고 칩 문자열 목록을 만드는 순수 함수입니다.
그룹은 아래 순서로 누적된 뒤 순서를 유지한 채 중복 제거, 최대 개수로 자릅니다.

1. 티켓 탭이 열려 있으면 이동 단축 칩
2. 진행 중 작업별 칩 (예/아니오, 출금 금액, 최근 주문 단축 칩)
3. 마지막 봇 응답이 확인을 묻는 경우 예/아니오
4. 마지막 봇 응답이 주문/구매 ID를 언급하는 경우 "Abrir Pedidos em Aberto"
5. 역할별 기본 칩 (buyer/seller/unset 중 하나)

칩 문자열은 그대로 다시 입력되므로, 각 칩은 의도 분류기에서 자신이 만들어진 의도로 분류되어야 합니다.
"""

from __future__ import annotations

import math
import re
from typing import List, Optional

from support_assistant.config import DialogConfig
from support_assistant.nlu.normalizer import normalize_text

from .models import (
    ActionType,
    ActiveTab,
    OrderSummary,
    PendingActionSnapshot,
    SuggestionContext,
    UserRole,
)
from .validators import format_currency

YES = "Sim"
NO = "Não"
SUPPORT = "Suporte geral"
OPEN_MESSAGES = "Abrir Mensagens"
OPEN_ORDERS = "Abrir Pedidos em Aberto"
OPEN_WALLET = "Abrir Carteira"
OPEN_MARKETPLACE = "Abrir Marketplace"
GO_MARKETPLACE = "Ir para Marketplace"
BALANCE = "Consultar saldo"
BIND_PIX = "Vincular PIX"
MY_TICKETS = "Meus Tickets"
NOT_RECEIVED = "Pedido não recebido"
I_AM_BUYER = "Sou comprador"
I_AM_SELLER = "Sou vendedor"

_CONFIRM_SEEKING = re.compile(r"confirma|confirmo|confirmar|deseja|posso\s+abrir")
_ID_REFERENCE = re.compile(r"numero\s+do\s+pedido|#\d+|id\s+da\s+compra|id\s+da\s+venda")


def withdraw_chip(amount: float) -> str:
    return f"Sacar {format_currency(amount)}"


def ship_chip(order_number: str) -> str:
    return f"Marcar envio da venda #{order_number}"


def confirm_chip(order_number: str) -> str:
    return f"Confirmar recebimento do pedido #{order_number}"


def cancel_chip(order_number: str) -> str:
    return f"Cancelar pedido #{order_number}"


def _clamped_withdraw(balance: Optional[float], config: DialogConfig) -> Optional[str]:
    """잔액 기반 출금 금액 칩 ([min, max] 범위로 제한). 잔액이 없으면 None."""
    if balance is None or not balance > 0:
        return None
    amount = max(
        config.withdraw_suggestion_min,
        min(config.withdraw_suggestion_max, math.floor(balance)),
    )
    return withdraw_chip(amount)


def _first(orders) -> Optional[OrderSummary]:
    return orders[0] if orders else None


def _pending_chips(
    pending: PendingActionSnapshot, ctx: SuggestionContext, config: DialogConfig
) -> List[str]:
    chips: List[str] = []
    recent_purchase = _first(ctx.purchases)
    recent_sale = _first(ctx.sales)

    if pending.type == ActionType.OPEN_TICKET:
        if pending.confirm_required:
            chips += [YES, NO]
        else:
            chips.append(OPEN_ORDERS)
    elif pending.type == ActionType.TRACK_ORDER:
        chips.append(OPEN_ORDERS)
    elif pending.type == ActionType.WITHDRAW:
        if pending.confirmation_prompted:
            chips += [YES, NO]
        else:
            chips += [withdraw_chip(v) for v in config.withdraw_presets]
            clamped = _clamped_withdraw(ctx.wallet_balance, config)
            if clamped:
                chips.append(clamped)
        chips.append(OPEN_WALLET)
    elif pending.type == ActionType.BIND_PIX_KEY:
        chips += [BIND_PIX, OPEN_WALLET]
    elif pending.type == ActionType.SHIP_ORDER:
        if recent_sale is not None and recent_sale.order_number:
            chips.append(ship_chip(recent_sale.order_number))
        chips.append(OPEN_ORDERS)
    elif pending.type == ActionType.CONFIRM_DELIVERY:
        if recent_purchase is not None and recent_purchase.order_number:
            chips.append(confirm_chip(recent_purchase.order_number))
        chips.append(OPEN_ORDERS)
    elif pending.type == ActionType.CANCEL_ORDER:
        if pending.confirmation_prompted:
            chips += [YES, NO]
        elif recent_purchase is not None and recent_purchase.order_number:
            chips.append(cancel_chip(recent_purchase.order_number))
        chips.append(OPEN_ORDERS)
    return chips


def _role_chips(ctx: SuggestionContext, config: DialogConfig) -> List[str]:
    chips: List[str] = []
    pix_bound = ctx.pix_info is not None and ctx.pix_info.is_bound
    clamped = _clamped_withdraw(ctx.wallet_balance, config)

    if ctx.role == UserRole.BUYER:
        recent = _first(ctx.purchases)
        if recent is not None and "shipped" in recent.status and recent.order_number:
            chips += [confirm_chip(recent.order_number), NOT_RECEIVED]
        chips.append(BALANCE)
        if not pix_bound:
            chips.append(BIND_PIX)
        if clamped:
            chips.append(clamped)
        chips += [MY_TICKETS, SUPPORT, OPEN_WALLET, OPEN_ORDERS, OPEN_MESSAGES]
    elif ctx.role == UserRole.SELLER:
        recent = _first(ctx.sales)
        if recent is not None and recent.order_number:
            chips.append(ship_chip(recent.order_number))
        chips.append(BALANCE)
        if not pix_bound:
            chips.append(BIND_PIX)
        if clamped:
            chips.append(clamped)
        chips += [MY_TICKETS, SUPPORT, OPEN_ORDERS, OPEN_MESSAGES, GO_MARKETPLACE]
    else:
        chips += [I_AM_BUYER, I_AM_SELLER, BALANCE]
        if not pix_bound:
            chips.append(BIND_PIX)
        chips += [OPEN_MARKETPLACE, OPEN_WALLET, OPEN_MESSAGES]
    return chips


def compute_suggestions(ctx: SuggestionContext, config: Optional[DialogConfig] = None) -> List[str]:
    """추천 칩 계산.

    Args:
        ctx: 읽기 전용 추천 컨텍스트
        config: 대화 설정 (최대 개수, 출금 프리셋 등)

    Returns:
        중복 없는 칩 문자열 목록 (최대 `max_suggestions`개)
    """
    config = config or DialogConfig()
    chips: List[str] = []

    if ctx.active_tab == ActiveTab.TICKETS:
        chips += [SUPPORT, OPEN_MESSAGES, OPEN_ORDERS, OPEN_WALLET]

    if ctx.pending_action is not None:
        chips += _pending_chips(ctx.pending_action, ctx, config)

    last = ctx.last_turn
    if last is not None and last.from_bot:
        text = normalize_text(last.text)
        if _CONFIRM_SEEKING.search(text):
            chips += [YES, NO]
        if _ID_REFERENCE.search(text):
            chips.append(OPEN_ORDERS)

    chips += _role_chips(ctx, config)

    # 순서 유지 중복 제거
    deduped = list(dict.fromkeys(chips))
    return deduped[: config.max_suggestions]
