"""대화 상태 관리자.

두 단계의 상태를 관리합니다.

1. 역할 게이트: 역할(comprador/vendedor)이 정해지기 전에는 역할 선언만 처리합니다.
2. 진행 중 작업(PendingAction) 상태 머신: 슬롯 병합 → 검증 → 누락 슬롯 질문
   → (필요 시) 확인 → 디스패치 대상 반환.

외부 호출은 하지 않습니다. `step()`은 동기 함수이며 디스패치가 필요하면
대상만 돌려주고, 세션이 디스패처를 호출한 뒤 `complete()`로 결과를 반영합니다.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from support_assistant.config import DialogConfig
from support_assistant.core.exceptions import NotFoundError, ValidationError
from support_assistant.nlu import (
    ExtractedEntities,
    Intent,
    classify,
    extract_entities,
    is_affirmative,
    is_negative,
    is_role_allowed,
)
from support_assistant.nlu.entities import PURCHASE_ID_PATTERN
from support_assistant.nlu.intent_classifier import ROLE_INTENTS, ROLE_RESTRICTED_INTENTS

from .models import (
    ActionType,
    ActiveTab,
    BalanceQueryAction,
    BindPixKeyAction,
    CancelOrderAction,
    Command,
    ConfirmDeliveryAction,
    DispatchOutcome,
    DispatchTarget,
    IssueType,
    NavigateAction,
    OpenTicketAction,
    OrderAction,
    OrderSummary,
    PendingAction,
    PixKeyQueryAction,
    SessionContext,
    ShipOrderAction,
    ShowTabAction,
    TrackOrderAction,
    UserRole,
    WithdrawAction,
)
from .validators import (
    format_currency,
    mask_pix_key,
    only_digits,
    sanitize_input,
    validate_amount,
    validate_pix_key,
)

logger = logging.getLogger(__name__)


# ============================================
# 고정 문구
# ============================================

ROLE_PROMPT = 'Por favor, informe se você é "comprador" ou "vendedor".'
CONFIRM_REASK = 'Para continuar, responda "sim" para confirmar ou "não" para cancelar.'
ORDER_ID_PROMPT = "Informe o número do pedido (ex: #12345) ou o ID da compra para continuar."
TICKET_ID_PROMPT = "Certo! Informe o ID da compra (24 caracteres) para abrir o ticket."
TICKET_DESCRIPTION_PROMPT = "Descreva brevemente o problema para que eu possa abrir o ticket."
WITHDRAW_AMOUNT_PROMPT = "Qual valor você deseja sacar? Ex: R$ 50,00"
WITHDRAW_KEY_PROMPT = 'Preciso da sua chave PIX (CPF ou CNPJ). Envie algo como: "PIX CPF 12345678901".'
BIND_PIX_PROMPT = 'Para vincular, envie: "PIX CPF 12345678901" ou "PIX CNPJ 12345678000190".'
BIND_PIX_REPROMPT = 'Envie sua chave como: "PIX CPF 12345678901" ou "PIX CNPJ 12345678000190".'
OPTIONAL_DESCRIPTION_PROMPT = (
    "Deseja incluir uma breve descrição do problema? Se sim, digite agora. "
    "Caso contrário, envie em branco."
)
TICKET_CONFIRM_PROMPT = "Ok! Posso abrir o ticket com esse ID. Confirma?"

_CANCEL_ACK: Dict[ActionType, str] = {
    ActionType.OPEN_TICKET: "Ok! Não abrirei o ticket.",
    ActionType.WITHDRAW: "Ok! Saque cancelado.",
    ActionType.BIND_PIX_KEY: "Ok! Não vincularei a chave PIX.",
}
_DEFAULT_CANCEL_ACK = "Ok! Operação cancelada."

_NAVIGATION: Dict[Intent, NavigateAction] = {
    Intent.NAVIGATE_WALLET: NavigateAction("/wallet", "Abrindo sua carteira..."),
    Intent.NAVIGATE_OPEN_ORDERS: NavigateAction("/open-orders", "Abrindo pedidos em aberto..."),
    Intent.NAVIGATE_PURCHASES: NavigateAction("/purchases", "Abrindo suas compras..."),
    Intent.NAVIGATE_SALES: NavigateAction("/sales", "Abrindo suas vendas..."),
    Intent.NAVIGATE_MESSAGES: NavigateAction("/messages", "Abrindo suas mensagens..."),
    Intent.NAVIGATE_MARKETPLACE: NavigateAction("/marketplace", "Abrindo o marketplace..."),
    Intent.NAVIGATE_HOME: NavigateAction("/", "Indo para a página inicial..."),
}

_TABS: Dict[Intent, ShowTabAction] = {
    Intent.TICKETS: ShowTabAction(ActiveTab.TICKETS, "Abrindo seus tickets..."),
    Intent.CONTACT: ShowTabAction(ActiveTab.CONTACT, "Abrindo o contato com a nossa equipe..."),
}

# 의도 -> 생성되는 PendingAction 유형
_SLOT_INTENTS: Dict[Intent, ActionType] = {
    Intent.NOT_RECEIVED: ActionType.OPEN_TICKET,
    Intent.PAYMENT_ISSUES: ActionType.OPEN_TICKET,
    Intent.REFUND: ActionType.OPEN_TICKET,
    Intent.DISPUTE: ActionType.OPEN_TICKET,
    Intent.GENERAL_SUPPORT: ActionType.OPEN_TICKET,
    Intent.TRACK_ORDER: ActionType.TRACK_ORDER,
    Intent.WITHDRAW: ActionType.WITHDRAW,
    Intent.BIND_PIX: ActionType.BIND_PIX_KEY,
    Intent.SHIP_ORDER: ActionType.SHIP_ORDER,
    Intent.CONFIRM_DELIVERY: ActionType.CONFIRM_DELIVERY,
    Intent.CANCEL_ORDER: ActionType.CANCEL_ORDER,
}

_TICKET_INTENTS: Dict[Intent, tuple] = {
    Intent.NOT_RECEIVED: (
        IssueType.SERVICE_NOT_DELIVERED,
        "Certo, para abrir o ticket me envie o ID da compra.",
    ),
    Intent.PAYMENT_ISSUES: (
        IssueType.PAYMENT_ISSUES,
        "Entendi um possível problema de pagamento. Me envie o ID da compra para verificar "
        "e abrir um ticket se necessário.",
    ),
    Intent.REFUND: (
        IssueType.OTHER,
        "Posso registrar uma solicitação de reembolso. Envie o ID da compra e um breve motivo.",
    ),
    Intent.DISPUTE: (
        IssueType.OTHER,
        "Certo! Para abrir uma disputa, me envie o ID da compra e um breve resumo.",
    ),
}

_ORDER_CREATE_PROMPTS: Dict[ActionType, str] = {
    ActionType.TRACK_ORDER: "Informe o número do pedido (ex: #12345) ou o ID da compra para acompanhar.",
    ActionType.SHIP_ORDER: (
        "Ok! Me informe o número do pedido (ex: #12345) ou o ID da compra para marcar como enviado."
    ),
    ActionType.CONFIRM_DELIVERY: (
        "Certo! Envie o número do pedido (ex: #12345) ou o ID da compra para confirmar o recebimento."
    ),
    ActionType.CANCEL_ORDER: "Para cancelar, me informe o número do pedido (ex: #12345) ou o ID da compra.",
}

_ROLE_RESTRICTION_REPLIES: Dict[str, str] = {
    "seller": "Essa opção está disponível apenas para vendedores.",
    "buyer": "Essa opção está disponível apenas para compradores.",
}

_BARE_PURCHASE_ID = re.compile(r"^[a-f0-9]{24}$")
_PURCHASE_ID_IN_RAW = re.compile(PURCHASE_ID_PATTERN.pattern, re.IGNORECASE)
_DIGITS_ONLY = re.compile(r"^[\d.\-/\s]+$")

# 역할 미정 상태에서만 적용: 문장 안의 역할 단어도 역할 선언으로 인정
_ROLE_WORDS = (
    (re.compile(r"\bcompradora?\b"), Intent.ROLE_BUYER),
    (re.compile(r"\bvendedora?\b"), Intent.ROLE_SELLER),
)


@dataclass
class Step:
    """한 턴의 처리 결과 (디스패치 전)."""

    intent: Intent
    replies: List[str] = field(default_factory=list)
    commands: List[Command] = field(default_factory=list)
    dispatch: Optional[DispatchTarget] = None


class DialogStateManager:
    """세션별 역할 및 진행 중 작업 관리.

    세션당 하나씩 생성하며, 진행 중 작업은 최대 하나만 유지합니다.
    """

    def __init__(self, config: Optional[DialogConfig] = None, role: UserRole = UserRole.UNSET):
        self.config = config or DialogConfig()
        self.role = role
        self.pending: Optional[PendingAction] = None

    # ============================================
    # 턴 처리
    # ============================================

    def step(self, raw: str, context: SessionContext) -> Step:
        """사용자 입력 한 턴 처리."""
        result = classify(raw)
        intent = result.intent
        entities = extract_entities(raw)

        if self.role == UserRole.UNSET:
            return self._role_gate(intent, result.normalized_text, context)

        if intent in ROLE_INTENTS:
            label = "comprador" if self.role == UserRole.BUYER else "vendedor"
            return Step(intent=intent, replies=[f"Você já está identificado como {label}."])

        if self.pending is not None:
            if intent in _NAVIGATION or intent in _TABS:
                # 진행 중 작업은 유지한 채 이동만 수행
                return Step(intent=intent, dispatch=_NAVIGATION.get(intent) or _TABS[intent])
            if is_negative(raw):
                return self._handle_negative(intent)
            if not self._should_replace(intent, entities):
                return self._advance(self.pending, raw, entities, context, intent)
            logger.info(f"진행 중 작업 교체: {self.pending.type.value} -> {intent.value}")
            self.pending = None

        return self._handle_new_intent(intent, result.normalized_text, raw, entities, context)

    def complete(self, target: DispatchTarget, outcome: DispatchOutcome) -> None:
        """디스패치 결과 반영 (작업 유지/삭제 정책, 후속 작업)."""
        if isinstance(target, PendingAction) and self.pending is target:
            if outcome.success or not target.retain_on_failure:
                self.pending = None
            else:
                target.failed_attempts += 1
                target.confirmation_prompted = False
                logger.info(
                    f"작업 실패 후 유지: {target.type.value} (시도 {target.failed_attempts}회)"
                )
        if outcome.follow_up is not None and self.pending is None:
            self.pending = outcome.follow_up

    # ============================================
    # 역할 게이트
    # ============================================

    def _role_gate(self, intent: Intent, normalized: str, context: SessionContext) -> Step:
        if intent not in ROLE_INTENTS:
            intent = next((tag for pattern, tag in _ROLE_WORDS if pattern.search(normalized)), intent)
        if intent == Intent.ROLE_BUYER:
            self.role = UserRole.BUYER
            recent = _format_recent(context.purchases, "Pedido", self.config.recent_orders_in_greeting)
            text = (
                "Perfeito! Como comprador, posso te ajudar com:\n"
                "• Pedido não recebido\n• Problemas de pagamento\n• Suporte geral\n\n"
                f"Você possui {context.open_ticket_count} ticket(s) em aberto.\n"
                f"Pedidos recentes:\n{recent or '• Sem pedidos recentes'}"
            )
        elif intent == Intent.ROLE_SELLER:
            self.role = UserRole.SELLER
            recent = _format_recent(context.sales, "Venda", self.config.recent_orders_in_greeting)
            text = (
                "Ótimo! Como vendedor, posso te ajudar com:\n"
                "• Disputas de pedido\n• Suporte geral\n• Dúvidas técnicas\n\n"
                f"Você possui {context.open_ticket_count} ticket(s) em aberto.\n"
                f"Vendas recentes:\n{recent or '• Sem vendas recentes'}"
            )
        else:
            return Step(intent=intent, replies=[ROLE_PROMPT])
        logger.info(f"역할 설정: {self.role.value}")
        return Step(intent=intent, replies=[text])

    # ============================================
    # 진행 중 작업
    # ============================================

    def _handle_negative(self, intent: Intent) -> Step:
        action = self.pending
        if (
            isinstance(action, OpenTicketAction)
            and action.description_optional
            and action.description is None
        ):
            # "설명을 넣겠습니까?"에 대한 거절은 빈 설명으로 진행
            candidate = dataclasses.replace(action, description="")
            self.pending = candidate
            return Step(intent=intent, dispatch=candidate)
        self.pending = None
        logger.info(f"작업 취소: {action.type.value}")
        return Step(intent=intent, replies=[_CANCEL_ACK.get(action.type, _DEFAULT_CANCEL_ACK)])

    def _should_replace(self, intent: Intent, entities: ExtractedEntities) -> bool:
        new_type = _SLOT_INTENTS.get(intent)
        if new_type is None or new_type == self.pending.type:
            return False
        if not is_role_allowed(intent, self.role.value):
            return False
        return not _supplies_slot(self.pending, entities)

    def _advance(
        self,
        action: PendingAction,
        raw: str,
        entities: ExtractedEntities,
        context: SessionContext,
        intent: Intent,
        initial: bool = False,
    ) -> Step:
        """슬롯 병합 → 검증 → 누락 질문 → 확인 → 디스패치."""
        candidate = dataclasses.replace(action)
        self._merge(candidate, raw, entities, context, initial)

        try:
            self._validate(candidate, context)
        except ValidationError as exc:
            logger.info(f"슬롯 검증 실패: {candidate.type.value} ({exc.message})")
            return Step(intent=intent, replies=[exc.message])
        except NotFoundError as exc:
            candidate.order_number = None
            self.pending = candidate
            return Step(intent=intent, replies=[exc.message])

        prompt = self._missing_prompt(candidate, context)
        if prompt is not None:
            self.pending = candidate
            return Step(intent=intent, replies=[prompt])

        if candidate.confirm_required:
            if not initial and is_affirmative(raw):
                self.pending = candidate
                return Step(intent=intent, dispatch=candidate)
            text = CONFIRM_REASK if candidate.confirmation_prompted else self._confirm_prompt(candidate, context)
            candidate.confirmation_prompted = True
            self.pending = candidate
            return Step(intent=intent, replies=[text])

        self.pending = candidate
        return Step(intent=intent, dispatch=candidate)

    def _merge(
        self,
        action: PendingAction,
        raw: str,
        entities: ExtractedEntities,
        context: SessionContext,
        initial: bool,
    ) -> None:
        # 실패 후 재시도 중이면 새로 입력된 식별자가 기존 값을 대체
        correcting = action.failed_attempts > 0

        def pick(stored, fresh):
            if correcting and fresh is not None:
                return fresh
            return stored if stored is not None else fresh

        if isinstance(action, OpenTicketAction):
            action.purchase_id = pick(action.purchase_id, entities.purchase_id)
            if not initial and action.description is None:
                text = _PURCHASE_ID_IN_RAW.sub(" ", raw or "")
                text = sanitize_input(text, self.config.description_max_length)
                if text or action.description_optional:
                    action.description = text
        elif isinstance(action, (TrackOrderAction, OrderAction)):
            action.purchase_id = pick(action.purchase_id, entities.purchase_id)
            action.order_number = pick(action.order_number, entities.order_number)
        elif isinstance(action, WithdrawAction):
            had_amount = action.amount is not None
            action.amount = pick(action.amount, entities.amount)
            if context.pix_info is not None and context.pix_info.is_bound:
                # 등록된 키가 입력된 키보다 우선 (잠김 여부와 무관)
                action.pix_key_type = context.pix_info.key_type
                action.pix_key = None
            else:
                action.pix_key_type = pick(action.pix_key_type, entities.pix_key_type)
                action.pix_key = pick(action.pix_key, entities.pix_key)
                if had_amount and action.pix_key is None:
                    action.pix_key = _raw_digits(raw, action.pix_key_type)
        elif isinstance(action, BindPixKeyAction):
            action.pix_key_type = pick(action.pix_key_type, entities.pix_key_type)
            action.pix_key = pick(action.pix_key, entities.pix_key)
            if action.pix_key is None:
                action.pix_key = _raw_digits(raw, action.pix_key_type)

    def _validate(self, action: PendingAction, context: SessionContext) -> None:
        checksum = self.config.validate_document_checksum
        if isinstance(action, WithdrawAction):
            if action.amount is not None:
                action.amount = validate_amount(action.amount, self.config.max_withdraw_amount)
            if action.pix_key_type and action.pix_key:
                action.pix_key = validate_pix_key(action.pix_key_type, action.pix_key, checksum)
        elif isinstance(action, BindPixKeyAction):
            if action.pix_key_type and action.pix_key:
                action.pix_key = validate_pix_key(action.pix_key_type, action.pix_key, checksum)
        elif isinstance(action, (TrackOrderAction, OrderAction)):
            if action.purchase_id is None and action.order_number is not None:
                order = _resolve_order(action, context)
                if order is None:
                    raise NotFoundError(
                        f"Não encontrei o pedido #{action.order_number}. "
                        "Informe outro número do pedido ou o ID da compra.",
                        details={"order_number": action.order_number},
                    )
                action.purchase_id = order.id

    def _missing_prompt(self, action: PendingAction, context: SessionContext) -> Optional[str]:
        if isinstance(action, OpenTicketAction):
            if action.purchase_id is None:
                return TICKET_ID_PROMPT
            if action.description is None and not action.description_optional:
                return TICKET_DESCRIPTION_PROMPT
            if action.description is None:
                return OPTIONAL_DESCRIPTION_PROMPT
        elif isinstance(action, (TrackOrderAction, OrderAction)):
            if action.purchase_id is None:
                return ORDER_ID_PROMPT
        elif isinstance(action, WithdrawAction):
            if action.amount is None:
                return WITHDRAW_AMOUNT_PROMPT
            bound = context.pix_info is not None and context.pix_info.is_bound
            if not bound and not (action.pix_key_type and action.pix_key):
                return WITHDRAW_KEY_PROMPT
        elif isinstance(action, BindPixKeyAction):
            if not (action.pix_key_type and action.pix_key):
                return BIND_PIX_REPROMPT
        return None

    def _confirm_prompt(self, action: PendingAction, context: SessionContext) -> str:
        suffix = ' Responda "sim" para confirmar ou "não" para cancelar.'
        if isinstance(action, WithdrawAction):
            pix = context.pix_info
            if pix is not None and pix.is_bound:
                key_label = f"{pix.type} {pix.key_masked or ''}".strip()
            else:
                key_label = f"{(action.pix_key_type or '').upper()} {mask_pix_key(action.pix_key or '', action.pix_key_type or '')}"
            return f"Confirma o saque de {format_currency(action.amount)} para a chave PIX {key_label}?{suffix}"
        if isinstance(action, CancelOrderAction):
            return f"Confirma o cancelamento do pedido {_order_label(action)}?{suffix}"
        if isinstance(action, OpenTicketAction):
            return TICKET_CONFIRM_PROMPT
        return f"Confirma a operação?{suffix}"

    # ============================================
    # 새 의도
    # ============================================

    def _handle_new_intent(
        self,
        intent: Intent,
        normalized: str,
        raw: str,
        entities: ExtractedEntities,
        context: SessionContext,
    ) -> Step:
        if not is_role_allowed(intent, self.role.value):
            required = ROLE_RESTRICTED_INTENTS[intent]
            return Step(intent=intent, replies=[_ROLE_RESTRICTION_REPLIES[required]])

        if intent in _NAVIGATION:
            return Step(intent=intent, dispatch=_NAVIGATION[intent])
        if intent in _TABS:
            return Step(intent=intent, dispatch=_TABS[intent])
        if intent == Intent.WALLET_BALANCE:
            return Step(intent=intent, dispatch=BalanceQueryAction())
        if intent == Intent.PIX_KEY:
            return Step(intent=intent, dispatch=PixKeyQueryAction())

        if intent in _TICKET_INTENTS:
            return self._start_ticket(intent, raw, entities, context)
        if intent == Intent.GENERAL_SUPPORT:
            return self._start_general_support(intent)
        if intent == Intent.BIND_PIX:
            return self._start_bind_pix(intent, raw, entities, context)
        if intent == Intent.WITHDRAW:
            action = WithdrawAction(confirm_required=self.config.confirm_withdraw)
            return self._start(action, raw, entities, context, intent)
        if intent in (Intent.TRACK_ORDER, Intent.SHIP_ORDER, Intent.CONFIRM_DELIVERY, Intent.CANCEL_ORDER):
            return self._start_order_action(intent, raw, entities, context)

        if self.role == UserRole.BUYER and _BARE_PURCHASE_ID.match(normalized):
            self.pending = OpenTicketAction(
                issue_type=IssueType.SERVICE_NOT_DELIVERED,
                purchase_id=normalized,
                description_optional=True,
            )
            return Step(intent=intent, replies=[OPTIONAL_DESCRIPTION_PROMPT])

        if self.role == UserRole.SELLER and "ticket" in normalized:
            return Step(
                intent=intent,
                replies=[
                    "Para registrar um ticket relacionado a uma venda, informe o ID da compra "
                    "e uma breve descrição do problema."
                ],
            )

        count = len(context.tickets)
        hint = f"Você possui {count} ticket(s)." if count > 0 else "Você ainda não possui tickets."
        return Step(
            intent=intent,
            replies=[
                f"Obrigado pela mensagem! Estou aqui para ajudar. {hint} "
                "Você também pode alternar para a aba Tickets para acompanhar seus atendimentos."
            ],
        )

    def _start(
        self,
        action: PendingAction,
        raw: str,
        entities: ExtractedEntities,
        context: SessionContext,
        intent: Intent,
        prompt: Optional[str] = None,
    ) -> Step:
        """새 작업 생성 후 같은 턴의 엔티티로 슬롯 채우기.

        검증 실패 시에도 빈 작업은 유지되어 다음 턴에 다시 채울 수 있습니다.
        """
        self.pending = action
        step = self._advance(action, raw, entities, context, intent, initial=True)
        if prompt is not None and step.dispatch is None and self.pending is not None:
            missing = self._missing_prompt(self.pending, context)
            if missing is not None and step.replies == [missing]:
                step.replies = [prompt]
        return step

    def _start_ticket(
        self, intent: Intent, raw: str, entities: ExtractedEntities, context: SessionContext
    ) -> Step:
        issue_type, prompt = _TICKET_INTENTS[intent]
        description = sanitize_input(raw, self.config.description_max_length)
        # 같은 턴에 구매 ID가 온 미수령 신고만 확인을 거침
        confirm = intent == Intent.NOT_RECEIVED and entities.purchase_id is not None
        self.pending = OpenTicketAction(
            issue_type=issue_type,
            purchase_id=entities.purchase_id,
            description=description,
            confirm_required=confirm,
            confirmation_prompted=confirm,
        )
        return Step(intent=intent, replies=[TICKET_CONFIRM_PROMPT if confirm else prompt])

    def _start_general_support(self, intent: Intent) -> Step:
        if self.role == UserRole.BUYER:
            tip = "Se seu pedido não chegou, posso abrir um ticket e notificar o vendedor."
        else:
            tip = "Se houve disputa em uma venda, posso orientar os próximos passos."
        self.pending = OpenTicketAction(issue_type=IssueType.OTHER)
        return Step(
            intent=intent,
            replies=[
                "Claro! Descreva seu problema com alguns detalhes e nossa equipe irá orientar "
                f"ou abrir um ticket conforme necessário. {tip}"
            ],
        )

    def _start_bind_pix(
        self, intent: Intent, raw: str, entities: ExtractedEntities, context: SessionContext
    ) -> Step:
        pix = context.pix_info
        if pix is not None and pix.is_bound:
            lock = " - bloqueada" if pix.locked else ""
            return Step(
                intent=intent,
                replies=[f"Você já possui uma chave PIX vinculada ({pix.type} {pix.key_masked or ''}{lock})."],
            )
        return self._start(BindPixKeyAction(), raw, entities, context, intent, prompt=BIND_PIX_PROMPT)

    def _start_order_action(
        self, intent: Intent, raw: str, entities: ExtractedEntities, context: SessionContext
    ) -> Step:
        if intent == Intent.TRACK_ORDER:
            action: PendingAction = TrackOrderAction()
        elif intent == Intent.SHIP_ORDER:
            action = ShipOrderAction()
        elif intent == Intent.CONFIRM_DELIVERY:
            action = ConfirmDeliveryAction()
        else:
            action = CancelOrderAction(confirm_required=self.config.confirm_cancel_order)
        return self._start(
            action, raw, entities, context, intent, prompt=_ORDER_CREATE_PROMPTS[action.type]
        )


# ============================================
# 헬퍼
# ============================================


def _supplies_slot(action: PendingAction, entities: ExtractedEntities) -> bool:
    """이번 턴의 엔티티가 현재 작업의 슬롯을 채우는지 여부."""
    if isinstance(action, OpenTicketAction):
        return entities.purchase_id is not None
    if isinstance(action, (TrackOrderAction, OrderAction)):
        return entities.purchase_id is not None or entities.order_number is not None
    if isinstance(action, WithdrawAction):
        return entities.amount is not None or entities.pix_key is not None
    if isinstance(action, BindPixKeyAction):
        return entities.pix_key_type is not None or entities.pix_key is not None
    return False


def _raw_digits(raw: str, key_type: Optional[str]) -> Optional[str]:
    """키 유형이 정해진 상태에서 숫자만 입력된 경우 그 숫자를 키로 사용."""
    if not key_type or not raw or not _DIGITS_ONLY.match(raw.strip()):
        return None
    return only_digits(raw) or None


def _resolve_order(action: PendingAction, context: SessionContext) -> Optional[OrderSummary]:
    if isinstance(action, ShipOrderAction):
        return context.find_order(action.order_number, sales=True)
    if isinstance(action, TrackOrderAction):
        return context.find_order(action.order_number) or context.find_order(action.order_number, sales=True)
    return context.find_order(action.order_number)


def _order_label(action: PendingAction) -> str:
    number = getattr(action, "order_number", None)
    if number:
        return f"#{number}"
    return getattr(action, "purchase_id", None) or ""


def _format_recent(orders: List[OrderSummary], fallback_title: str, limit: int) -> str:
    return "\n".join(
        f"• #{o.order_number} — {o.title or fallback_title} ({o.status})" for o in orders[:limit]
    )
