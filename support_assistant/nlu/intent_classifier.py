"""의도 분류기 모듈.

정규화된 텍스트에 대해 (패턴, 의도) 규칙을 위에서부터 순서대로 평가하고
가장 먼저 일치한 규칙의 의도를 반환합니다. 일치하는 규칙이 없으면 unknown.

규칙 순서가 곧 우선순위입니다. 구체적인 규칙이 일반적인 규칙보다 먼저 와야
추천 칩 문자열이 항상 자신이 만들어진 의도로 다시 분류됩니다.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Mapping, Optional, Pattern, Tuple

from .normalizer import normalize_text

logger = logging.getLogger(__name__)


class Intent(str, Enum):
    """지원 도메인 의도 태그."""

    # 역할 선언
    ROLE_BUYER = "role_buyer"
    ROLE_SELLER = "role_seller"
    # 내비게이션
    TICKETS = "tickets"
    NAVIGATE_WALLET = "navigate_wallet"
    NAVIGATE_OPEN_ORDERS = "navigate_open_orders"
    NAVIGATE_PURCHASES = "navigate_purchases"
    NAVIGATE_SALES = "navigate_sales"
    NAVIGATE_MESSAGES = "navigate_messages"
    NAVIGATE_MARKETPLACE = "navigate_marketplace"
    NAVIGATE_HOME = "navigate_home"
    # 금융
    WALLET_BALANCE = "wallet_balance"
    WITHDRAW = "withdraw"
    BIND_PIX = "bind_pix"
    PIX_KEY = "pix_key"
    # 주문 라이프사이클
    TRACK_ORDER = "track_order"
    NOT_RECEIVED = "not_received"
    SHIP_ORDER = "ship_order"
    CONFIRM_DELIVERY = "confirm_delivery"
    CANCEL_ORDER = "cancel_order"
    # 티켓 관련
    PAYMENT_ISSUES = "payment_issues"
    REFUND = "refund"
    DISPUTE = "dispute"
    CONTACT = "contact"
    GENERAL_SUPPORT = "general_support"

    UNKNOWN = "unknown"


@dataclass(frozen=True)
class IntentRule:
    """분류 규칙 (정규화 텍스트 패턴 -> 의도)."""

    pattern: Pattern[str]
    intent: Intent


@dataclass(frozen=True)
class IntentResult:
    """의도 분류 결과."""

    intent: Intent
    normalized_text: str
    rule_index: Optional[int] = None

    @property
    def matched(self) -> bool:
        return self.rule_index is not None


def _rule(pattern: str, intent: Intent) -> IntentRule:
    return IntentRule(pattern=re.compile(pattern), intent=intent)


_NAV_VERB = r"\b(?:ir|abrir|acessar)\b.*"
_ARTICLE = r"(?:o\s+|a\s+|um\s+|uma\s+)?"

# 순서 변경 금지: 앞선 규칙이 뒤의 규칙보다 우선합니다.
INTENT_RULES: Tuple[IntentRule, ...] = (
    _rule(rf"\bsou\s+{_ARTICLE}compradora?\b|^compradora?[.!?]*$|\bbuyer\b", Intent.ROLE_BUYER),
    _rule(rf"\bsou\s+{_ARTICLE}vendedora?\b|^vendedora?[.!?]*$|\bseller\b", Intent.ROLE_SELLER),
    _rule(r"\bmeus\s+tickets\b|\babrir\s+tickets\b|^tickets$", Intent.TICKETS),
    _rule(r"\bnao\s*(?:recebi|chegou)", Intent.NOT_RECEIVED),
    _rule(r"\b(?:confirmar|confirmei|confirmo)\b.*\b(?:recebimento|entrega)\b|\bconfirm\s+delivery\b", Intent.CONFIRM_DELIVERY),
    _rule(r"\bmarcar\b.*\benvio\b|\b(?:enviar|postar|despachar)\b.*\b(?:pedido|venda)\b|\bship\b", Intent.SHIP_ORDER),
    _rule(r"\b(?:cancelar|cancelei|cancela)\b", Intent.CANCEL_ORDER),
    _rule(r"\b(?:acompanhar|rastrear|status|ver)\b.*(?:\b(?:pedido|venda|order)\b|#\d+)", Intent.TRACK_ORDER),
    _rule(r"\b(?:vincular|cadastrar)\b.*\bpix\b|\bbind\s+pix\b|^pix\s+c\s*(?:n\s*)?p\s*[fj]\b", Intent.BIND_PIX),
    _rule(r"\b(?:minha|qual)\b.*\bpix\b", Intent.PIX_KEY),
    _rule(r"\b(?:sacar|saque|retirar|withdraw)\b", Intent.WITHDRAW),
    _rule(_NAV_VERB + r"\b(?:carteira|wallet)\b", Intent.NAVIGATE_WALLET),
    _rule(_NAV_VERB + r"\b(?:pedidos\s*em\s*aberto|open\s*orders)\b", Intent.NAVIGATE_OPEN_ORDERS),
    _rule(_NAV_VERB + r"\b(?:compras|purchases)\b", Intent.NAVIGATE_PURCHASES),
    _rule(_NAV_VERB + r"\b(?:vendas|sales)\b", Intent.NAVIGATE_SALES),
    _rule(_NAV_VERB + r"\b(?:mensagens|conversas|messages|chat)\b", Intent.NAVIGATE_MESSAGES),
    _rule(_NAV_VERB + r"\b(?:marketplace|loja)\b", Intent.NAVIGATE_MARKETPLACE),
    _rule(_NAV_VERB + r"\b(?:inicio|home|pagina\s*inicial)\b", Intent.NAVIGATE_HOME),
    _rule(r"\b(?:saldo|carteira|balance)\b|\bquanto\s+tenho\b", Intent.WALLET_BALANCE),
    _rule(r"\b(?:pagamento|paguei|recusado|falha|cartao|pix|boleto)\b", Intent.PAYMENT_ISSUES),
    _rule(r"\b(?:reembolso|refund|devolucao)\b", Intent.REFUND),
    _rule(r"\b(?:disputa|contestacao|chargeback)\b", Intent.DISPUTE),
    _rule(r"\b(?:contato|contacto)\b|\bfalar\s+com\b", Intent.CONTACT),
    _rule(r"\bsuporte\s+geral\b|\bduvidas?\b|\bajuda\b", Intent.GENERAL_SUPPORT),
)

ROLE_INTENTS: FrozenSet[Intent] = frozenset({Intent.ROLE_BUYER, Intent.ROLE_SELLER})

# 역할별로 도달 가능한 의도 (여기 없는 의도는 모든 역할 허용)
ROLE_RESTRICTED_INTENTS: Mapping[Intent, str] = {
    Intent.SHIP_ORDER: "seller",
    Intent.CONFIRM_DELIVERY: "buyer",
    Intent.NOT_RECEIVED: "buyer",
}

_AFFIRMATIVE_RE = re.compile(r"^(?:sim|s|ok|pode|claro|confirmo|confirmar|vai)[.!]*$")
_NEGATIVE_RE = re.compile(r"^(?:nao|n|negativo|cancelar|cancela|deixa|melhor nao)[.!]*$")


def classify(text: str) -> IntentResult:
    """텍스트 의도 분류 (규칙 인덱스 포함).

    같은 정규화 문자열에 대해 항상 같은 결과를 반환합니다 (숨은 상태 없음).
    """
    normalized = normalize_text(text)
    for index, rule in enumerate(INTENT_RULES):
        if rule.pattern.search(normalized):
            return IntentResult(intent=rule.intent, normalized_text=normalized, rule_index=index)
    return IntentResult(intent=Intent.UNKNOWN, normalized_text=normalized)


def classify_intent(text: str) -> Intent:
    """텍스트 의도 분류."""
    return classify(text).intent


def is_role_allowed(intent: Intent, role: Optional[str]) -> bool:
    """현재 역할에서 해당 의도가 허용되는지 확인."""
    required = ROLE_RESTRICTED_INTENTS.get(intent)
    return required is None or required == role


def is_affirmative(text: str) -> bool:
    """긍정 응답 여부 (sim, s, ok ...)."""
    return bool(_AFFIRMATIVE_RE.match(normalize_text(text)))


def is_negative(text: str) -> bool:
    """부정/취소 응답 여부 (não, n, cancelar ...)."""
    return bool(_NEGATIVE_RE.match(normalize_text(text)))
