from __future__ import annotations
"""인메모리 Mock 협력 서비스.

설계 요약
- 티켓: 생성 시 `TICKET-<epoch>-<seq>` 규칙으로 식별자를 발급, 상태는 pending으로 시작합니다.
- 지갑: 잔액/PIX 키 보관. 출금은 멱등 키 단위로 한 번만 차감됩니다.
- 주문: paid → shipped → completed, 취소는 발송 전 상태에서만 허용합니다.
- 모든 호출은 `calls`에 (메서드, 인자) 형태로 기록됩니다 (테스트/데모용).

주의
- 단일 프로세스 데모 용도이며 영속화하지 않습니다.
"""

import datetime as dt
import itertools
import logging
from typing import Any, Dict, List, Optional, Tuple

from support_assistant.dialog.models import Fingerprint
from support_assistant.dialog.validators import format_currency, mask_pix_key

from .interfaces import PixDestination, SecurityContext, SupportServices, TicketRequest

logger = logging.getLogger(__name__)

_CANCELLABLE_STATUSES = {"pending", "paid"}
_SHIPPABLE_STATUSES = {"pending", "paid"}


def _now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).replace(microsecond=0).isoformat()


class _CallRecorder:
    def __init__(self) -> None:
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)


class InMemoryTicketService(_CallRecorder):
    """지원 티켓 Mock 서비스."""

    def __init__(self, tickets: Optional[List[Dict[str, Any]]] = None) -> None:
        super().__init__()
        self.tickets: List[Dict[str, Any]] = list(tickets or [])
        self._seq = itertools.count(1)

    async def open_ticket(
        self, purchase_id: str, request: TicketRequest, security: SecurityContext
    ) -> Dict[str, Any]:
        self._record("open_ticket", purchase_id, request, security)
        if not purchase_id:
            return {"success": False, "message": "ID da compra obrigatório."}
        ticket_id = f"TICKET-{int(dt.datetime.now().timestamp())}-{next(self._seq)}"
        rec = {
            "_id": ticket_id,
            "purchaseId": purchase_id,
            "type": request.issue_type,
            "reason": request.description,
            "status": "pending",
            "createdAt": _now_iso(),
        }
        self.tickets.insert(0, rec)
        logger.info(f"티켓 생성: {ticket_id} (purchase={purchase_id})")
        return {"success": True, "data": rec}

    async def list_tickets(self, page: int = 1, limit: int = 20) -> List[Dict[str, Any]]:
        self._record("list_tickets", page, limit)
        start = max(0, (page - 1) * limit)
        return self.tickets[start : start + max(0, limit)]

    async def get_ticket(self, ticket_id: str) -> Optional[Dict[str, Any]]:
        self._record("get_ticket", ticket_id)
        return next((t for t in self.tickets if t.get("_id") == ticket_id), None)


class InMemoryWalletService(_CallRecorder):
    """지갑/PIX Mock 서비스."""

    def __init__(
        self,
        balance: float = 0.0,
        pix_key_type: Optional[str] = None,
        pix_key: Optional[str] = None,
        locked: bool = False,
    ) -> None:
        super().__init__()
        self.balance = float(balance)
        self.pix_key_type = pix_key_type
        self.pix_key = pix_key
        self.locked = locked
        self.withdrawals: Dict[str, Dict[str, Any]] = {}

    async def get_wallet(self) -> Dict[str, Any]:
        self._record("get_wallet")
        return {"balance": self.balance}

    async def get_pix_key(self) -> Dict[str, Any]:
        self._record("get_pix_key")
        if not self.pix_key_type:
            return {"success": True, "data": None}
        return {
            "success": True,
            "data": {
                "type": self.pix_key_type.upper(),
                "keyMasked": mask_pix_key(self.pix_key or "", self.pix_key_type),
                "locked": self.locked,
            },
        }

    async def bind_pix_key(self, pix_key: str, pix_key_type: str) -> Dict[str, Any]:
        self._record("bind_pix_key", pix_key, pix_key_type)
        if self.pix_key_type and self.locked:
            return {"success": False, "message": "Sua chave PIX está bloqueada para alteração."}
        self.pix_key_type = pix_key_type
        self.pix_key = pix_key
        self.locked = True
        return {
            "success": True,
            "data": {
                "type": pix_key_type.upper(),
                "keyMasked": mask_pix_key(pix_key, pix_key_type),
                "locked": True,
            },
        }

    async def withdraw(
        self, amount: float, destination: PixDestination, idempotency_key: str
    ) -> Dict[str, Any]:
        self._record("withdraw", amount, destination, idempotency_key)
        if idempotency_key in self.withdrawals:
            return self.withdrawals[idempotency_key]
        if destination.pix_key is None and not self.pix_key_type:
            return {"success": False, "message": "Nenhuma chave PIX vinculada."}
        if amount > self.balance:
            return {
                "success": False,
                "message": f"Saldo insuficiente. Seu saldo atual é {format_currency(self.balance)}.",
            }
        self.balance -= amount
        result = {
            "success": True,
            "data": {
                "withdrawalId": f"WD-{len(self.withdrawals) + 1}",
                "amount": amount,
                "estimatedProcessingTime": "instante a 24h úteis",
            },
        }
        self.withdrawals[idempotency_key] = result
        logger.info(f"출금 처리: {amount} (key={idempotency_key})")
        return result


class InMemoryPurchaseService(_CallRecorder):
    """구매/판매 주문 Mock 서비스."""

    def __init__(
        self,
        purchases: Optional[List[Dict[str, Any]]] = None,
        sales: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        super().__init__()
        self.orders: Dict[str, List[Dict[str, Any]]] = {
            "purchases": list(purchases or []),
            "sales": list(sales or []),
        }

    def _find(self, purchase_id: str) -> Optional[Dict[str, Any]]:
        for rows in self.orders.values():
            for r in rows:
                if r.get("_id") == purchase_id:
                    return r
        return None

    async def list(self, type: str, page: int = 1, limit: int = 5) -> List[Dict[str, Any]]:
        self._record("list", type, page, limit)
        rows = self.orders.get(type, [])
        start = max(0, (page - 1) * limit)
        return rows[start : start + max(0, limit)]

    async def ship(self, purchase_id: str) -> Dict[str, Any]:
        self._record("ship", purchase_id)
        r = self._find(purchase_id)
        if not r:
            return {"success": False, "message": "Pedido não encontrado."}
        if r.get("status") not in _SHIPPABLE_STATUSES:
            return {"success": False, "message": "Este pedido não pode ser marcado como enviado."}
        r["status"] = "shipped"
        return {"success": True, "data": {"status": "shipped"}}

    async def confirm(self, purchase_id: str) -> Dict[str, Any]:
        self._record("confirm", purchase_id)
        r = self._find(purchase_id)
        if not r:
            return {"success": False, "message": "Pedido não encontrado."}
        if r.get("status") != "shipped":
            return {"success": False, "message": "Só é possível confirmar pedidos enviados."}
        r["status"] = "completed"
        return {"success": True, "data": {"status": "completed"}}

    async def cancel(self, purchase_id: str) -> Dict[str, Any]:
        self._record("cancel", purchase_id)
        r = self._find(purchase_id)
        if not r:
            return {"success": False, "message": "Pedido não encontrado."}
        if r.get("status") not in _CANCELLABLE_STATUSES:
            return {"success": False, "message": "Só é possível cancelar antes do envio."}
        r["status"] = "cancelled"
        return {"success": True, "data": {"status": "cancelled"}}


class RecordingNavigator:
    """이동 요청을 기록만 하는 내비게이터."""

    def __init__(self) -> None:
        self.paths: List[str] = []

    def navigate(self, path: str) -> None:
        self.paths.append(path)


class StaticFingerprintProvider:
    def __init__(self, fingerprint: Optional[str] = None) -> None:
        self.fingerprint = fingerprint

    async def get_fingerprint(self) -> Fingerprint:
        return Fingerprint(fingerprint=self.fingerprint, components={"source": "static"})


def build_demo_services() -> SupportServices:
    """데모 데이터가 채워진 Mock 서비스 묶음 생성."""
    purchases = [
        {"_id": "64b7f0c2a1d3e4f5a6b7c8d9", "orderNumber": 12345, "status": "shipped", "item": {"title": "Conta Premium"}},
        {"_id": "64b7f0c2a1d3e4f5a6b7c8da", "orderNumber": 12346, "status": "paid", "item": {"title": "Gift Card"}},
    ]
    sales = [
        {"_id": "64b7f0c2a1d3e4f5a6b7c8db", "orderNumber": 22001, "status": "paid", "item": {"title": "Skin Rara"}},
    ]
    return SupportServices(
        tickets=InMemoryTicketService(),
        wallet=InMemoryWalletService(balance=150.0),
        purchases=InMemoryPurchaseService(purchases=purchases, sales=sales),
        navigator=RecordingNavigator(),
        fingerprint=StaticFingerprintProvider("demo-device"),
    )
