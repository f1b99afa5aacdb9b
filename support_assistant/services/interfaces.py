from __future__ import annotations
"""외부 협력 서비스 인터페이스.

대화 엔진은 아래 서비스의 호출 경계만 알고 있으며, 구현은 호스트가 주입합니다.
모든 명령형 응답은 `{success, message?, data?}` 형태이고 `ServiceResult`로 정규화합니다.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from support_assistant.dialog.models import Fingerprint


@dataclass
class ServiceResult:
    """외부 서비스 응답 (정규화)."""

    success: bool
    message: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Any) -> "ServiceResult":
        """dict / ServiceResult / None 을 ServiceResult로 변환."""
        if isinstance(raw, ServiceResult):
            return raw
        if not isinstance(raw, dict):
            return cls(success=False)
        data = raw.get("data")
        message = raw.get("message")
        return cls(
            success=bool(raw.get("success")),
            message=str(message) if message else None,
            data=data if isinstance(data, dict) else {},
        )


@dataclass(frozen=True)
class TicketRequest:
    description: str
    issue_type: str


@dataclass(frozen=True)
class SecurityContext:
    """티켓 생성 시 첨부되는 기기 지문 (없어도 됨)."""

    fingerprint: Optional[str] = None
    components: Optional[Dict[str, Any]] = None

    @classmethod
    def from_fingerprint(cls, fp: Optional[Fingerprint]) -> "SecurityContext":
        if fp is None:
            return cls()
        return cls(fingerprint=fp.fingerprint, components=fp.components)


@dataclass(frozen=True)
class PixDestination:
    """출금 대상 PIX 키. 등록된 키를 사용할 때 pix_key는 None."""

    pix_key_type: str
    pix_key: Optional[str] = None


class TicketService(Protocol):
    async def open_ticket(
        self, purchase_id: str, request: TicketRequest, security: SecurityContext
    ) -> Dict[str, Any]:
        ...

    async def list_tickets(self, page: int = 1, limit: int = 20) -> List[Dict[str, Any]]:
        ...

    async def get_ticket(self, ticket_id: str) -> Optional[Dict[str, Any]]:
        ...


class WalletService(Protocol):
    async def get_wallet(self) -> Dict[str, Any]:
        ...

    async def get_pix_key(self) -> Dict[str, Any]:
        ...

    async def bind_pix_key(self, pix_key: str, pix_key_type: str) -> Dict[str, Any]:
        ...

    async def withdraw(
        self, amount: float, destination: PixDestination, idempotency_key: str
    ) -> Dict[str, Any]:
        ...


class PurchaseService(Protocol):
    async def list(self, type: str, page: int = 1, limit: int = 5) -> List[Dict[str, Any]]:
        ...

    async def ship(self, purchase_id: str) -> Dict[str, Any]:
        ...

    async def confirm(self, purchase_id: str) -> Dict[str, Any]:
        ...

    async def cancel(self, purchase_id: str) -> Dict[str, Any]:
        ...


class Navigator(Protocol):
    def navigate(self, path: str) -> None:
        ...


class FingerprintProvider(Protocol):
    async def get_fingerprint(self) -> Fingerprint:
        ...


@dataclass
class SupportServices:
    """세션에 주입되는 협력 서비스 묶음."""

    tickets: TicketService
    wallet: WalletService
    purchases: PurchaseService
    navigator: Optional[Navigator] = None
    fingerprint: Optional[FingerprintProvider] = None
