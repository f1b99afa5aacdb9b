"""대화 엔진 데이터 모델.

대화 턴, 사용자 역할, 진행 중 작업(PendingAction), 추천 컨텍스트,
호스트 UI로 반환되는 명령(Command) 등을 정의합니다.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union


# ============================================
# 열거형
# ============================================


class Speaker(str, Enum):
    BOT = "bot"
    USER = "user"


class UserRole(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"
    UNSET = "unset"


class ActiveTab(str, Enum):
    ASSISTANT = "assistant"
    CONTACT = "contact"
    TICKETS = "tickets"


class ActionType(str, Enum):
    OPEN_TICKET = "openTicket"
    TRACK_ORDER = "trackOrder"
    WITHDRAW = "withdraw"
    BIND_PIX_KEY = "bindPixKey"
    SHIP_ORDER = "shipOrder"
    CONFIRM_DELIVERY = "confirmDelivery"
    CANCEL_ORDER = "cancelOrder"


class IssueType(str, Enum):
    SERVICE_NOT_DELIVERED = "service_not_delivered"
    PAYMENT_ISSUES = "payment_issues"
    OTHER = "other"


# ============================================
# 대화/비즈니스 데이터
# ============================================


@dataclass(frozen=True)
class ConversationTurn:
    """대화 턴 (세션이 소유, 추가만 가능)."""

    speaker: Speaker
    text: str

    @property
    def from_bot(self) -> bool:
        return self.speaker == Speaker.BOT


@dataclass(frozen=True)
class PixInfo:
    """지갑에 연결된 PIX 키 정보."""

    type: Optional[str] = None  # PHONE | CPF | CNPJ
    key_masked: Optional[str] = None
    locked: bool = False

    @property
    def is_bound(self) -> bool:
        return bool(self.type)

    @property
    def key_type(self) -> Optional[str]:
        """출금 요청용 키 유형 (cpf/cnpj)."""
        if not self.type:
            return None
        return "cnpj" if str(self.type).upper() == "CNPJ" else "cpf"

    @classmethod
    def from_raw(cls, raw: Optional[Dict[str, Any]]) -> Optional["PixInfo"]:
        if not raw:
            return None
        return cls(
            type=raw.get("type"),
            key_masked=raw.get("keyMasked") or raw.get("key_masked"),
            locked=bool(raw.get("locked", False)),
        )


@dataclass(frozen=True)
class OrderSummary:
    """구매/판매 목록의 주문 요약."""

    id: str
    order_number: Optional[str] = None
    status: str = ""
    title: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "OrderSummary":
        item = raw.get("item") or {}
        number = raw.get("orderNumber", raw.get("order_number"))
        return cls(
            id=str(raw.get("_id") or raw.get("id") or ""),
            order_number=str(number) if number is not None else None,
            status=str(raw.get("status") or ""),
            title=item.get("title") if isinstance(item, dict) else None,
        )


@dataclass(frozen=True)
class TicketSummary:
    """지원 티켓 요약."""

    id: str
    status: str = ""
    type: str = ""
    reason: str = ""
    created_at: str = ""

    OPEN_STATUSES: ClassVar[Tuple[str, ...]] = ("pending", "under_review")

    @property
    def is_open(self) -> bool:
        return self.status in self.OPEN_STATUSES

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "TicketSummary":
        return cls(
            id=str(raw.get("_id") or raw.get("id") or ""),
            status=str(raw.get("status") or ""),
            type=str(raw.get("type") or ""),
            reason=str(raw.get("reason") or ""),
            created_at=str(raw.get("createdAt") or raw.get("created_at") or ""),
        )


@dataclass(frozen=True)
class Fingerprint:
    """기기 지문 (부정 사용 상관 분석용, 불투명 값)."""

    fingerprint: Optional[str] = None
    components: Optional[Dict[str, Any]] = None


# ============================================
# 호스트 UI 명령
# ============================================


@dataclass(frozen=True)
class NavigateCommand:
    path: str


@dataclass(frozen=True)
class SwitchTabCommand:
    tab: ActiveTab


Command = Union[NavigateCommand, SwitchTabCommand]


# ============================================
# 진행 중 작업 (PendingAction)
# ============================================


@dataclass
class PendingAction:
    """진행 중인(아직 디스패치되지 않은) 사용자 작업.

    세션당 최대 하나만 존재합니다. 하위 클래스가 작업별 슬롯을 정의합니다.
    """

    action_type: ClassVar[ActionType]
    # 디스패치 실패 시 작업 유지 여부 (티켓만 유지)
    retain_on_failure: ClassVar[bool] = False

    confirm_required: bool = False
    confirmation_prompted: bool = False
    failed_attempts: int = 0

    @property
    def type(self) -> ActionType:
        return self.action_type

    def snapshot(self) -> "PendingActionSnapshot":
        return PendingActionSnapshot(
            type=self.action_type,
            confirm_required=self.confirm_required,
            confirmation_prompted=self.confirmation_prompted,
            order_number=getattr(self, "order_number", None),
            purchase_id=getattr(self, "purchase_id", None),
            amount=getattr(self, "amount", None),
        )


@dataclass
class OpenTicketAction(PendingAction):
    action_type: ClassVar[ActionType] = ActionType.OPEN_TICKET
    retain_on_failure: ClassVar[bool] = True

    issue_type: IssueType = IssueType.OTHER
    purchase_id: Optional[str] = None
    description: Optional[str] = None
    # 구매 ID만 입력된 흐름에서는 설명을 비워서 보낼 수 있음
    description_optional: bool = False


@dataclass
class TrackOrderAction(PendingAction):
    action_type: ClassVar[ActionType] = ActionType.TRACK_ORDER

    purchase_id: Optional[str] = None
    order_number: Optional[str] = None


@dataclass
class WithdrawAction(PendingAction):
    action_type: ClassVar[ActionType] = ActionType.WITHDRAW

    amount: Optional[float] = None
    pix_key_type: Optional[str] = None
    pix_key: Optional[str] = None
    idempotency_key: str = field(default_factory=lambda: f"wd_{uuid.uuid4().hex}")


@dataclass
class BindPixKeyAction(PendingAction):
    action_type: ClassVar[ActionType] = ActionType.BIND_PIX_KEY

    pix_key_type: Optional[str] = None
    pix_key: Optional[str] = None


@dataclass
class OrderAction(PendingAction):
    """주문 번호 또는 구매 ID로 대상을 지정하는 작업 (발송/수령 확인/취소)."""

    purchase_id: Optional[str] = None
    order_number: Optional[str] = None


@dataclass
class ShipOrderAction(OrderAction):
    action_type: ClassVar[ActionType] = ActionType.SHIP_ORDER


@dataclass
class ConfirmDeliveryAction(OrderAction):
    action_type: ClassVar[ActionType] = ActionType.CONFIRM_DELIVERY


@dataclass
class CancelOrderAction(OrderAction):
    action_type: ClassVar[ActionType] = ActionType.CANCEL_ORDER


@dataclass(frozen=True)
class PendingActionSnapshot:
    """추천 엔진용 읽기 전용 PendingAction 스냅샷."""

    type: ActionType
    confirm_required: bool = False
    confirmation_prompted: bool = False
    order_number: Optional[str] = None
    purchase_id: Optional[str] = None
    amount: Optional[float] = None


# ============================================
# 즉시 실행 작업 (슬롯 없음)
# ============================================


@dataclass(frozen=True)
class NavigateAction:
    path: str
    message: str


@dataclass(frozen=True)
class ShowTabAction:
    tab: ActiveTab
    message: str


@dataclass(frozen=True)
class BalanceQueryAction:
    pass


@dataclass(frozen=True)
class PixKeyQueryAction:
    pass


ImmediateAction = Union[NavigateAction, ShowTabAction, BalanceQueryAction, PixKeyQueryAction]
DispatchTarget = Union[PendingAction, NavigateAction, ShowTabAction, BalanceQueryAction, PixKeyQueryAction]


# ============================================
# 세션 컨텍스트 / 추천 컨텍스트
# ============================================


@dataclass
class SessionContext:
    """세션이 소유하는 비즈니스 데이터 (세션 시작 시 미리 가져옴)."""

    purchases: List[OrderSummary] = field(default_factory=list)
    sales: List[OrderSummary] = field(default_factory=list)
    tickets: List[TicketSummary] = field(default_factory=list)
    wallet_balance: Optional[float] = None
    pix_info: Optional[PixInfo] = None
    fingerprint: Optional[Fingerprint] = None
    active_tab: ActiveTab = ActiveTab.ASSISTANT

    @property
    def open_ticket_count(self) -> int:
        return sum(1 for t in self.tickets if t.is_open)

    def find_order(self, order_number: str, sales: bool = False) -> Optional[OrderSummary]:
        """주문 번호로 구매/판매 목록에서 주문 검색."""
        pool = self.sales if sales else self.purchases
        for order in pool:
            if order.order_number is not None and str(order.order_number) == str(order_number):
                return order
        return None


@dataclass(frozen=True)
class SuggestionContext:
    """추천 엔진 입력 (읽기 전용 스냅샷)."""

    role: UserRole = UserRole.UNSET
    purchases: Tuple[OrderSummary, ...] = ()
    sales: Tuple[OrderSummary, ...] = ()
    wallet_balance: Optional[float] = None
    pix_info: Optional[PixInfo] = None
    last_turn: Optional[ConversationTurn] = None
    active_tab: ActiveTab = ActiveTab.ASSISTANT
    pending_action: Optional[PendingActionSnapshot] = None


# ============================================
# 디스패치/턴 결과
# ============================================


@dataclass
class DispatchOutcome:
    """디스패처 실행 결과."""

    success: bool
    message: str
    commands: List[Command] = field(default_factory=list)
    refresh_wallet: bool = False
    refresh_tickets: bool = False
    refresh_orders: bool = False
    wallet_balance: Optional[float] = None
    pix_info: Optional[PixInfo] = None
    # 실행 결과로 새로 시작할 작업 (예: PIX 키 미등록 -> 등록 흐름)
    follow_up: Optional[PendingAction] = None
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TurnResult:
    """사용자 턴 처리 결과."""

    accepted: bool
    replies: List[str] = field(default_factory=list)
    commands: List[Command] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
