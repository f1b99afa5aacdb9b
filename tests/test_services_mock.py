"""인메모리 Mock 협력 서비스 테스트."""

import pytest

from support_assistant.services import (
    InMemoryPurchaseService,
    InMemoryTicketService,
    InMemoryWalletService,
    PixDestination,
    SecurityContext,
    ServiceResult,
    TicketRequest,
    build_demo_services,
)


class TestServiceResult:
    """응답 정규화 테스트."""

    def test_from_dict(self):
        """dict 응답."""
        result = ServiceResult.from_raw({"success": True, "message": "ok", "data": {"a": 1}})
        assert result == ServiceResult(success=True, message="ok", data={"a": 1})

    @pytest.mark.parametrize("raw", [None, "erro", 42])
    def test_non_dict_is_failure(self, raw):
        """dict가 아니면 실패."""
        assert ServiceResult.from_raw(raw).success is False

    def test_non_dict_data(self):
        """data가 dict가 아니면 빈 dict."""
        assert ServiceResult.from_raw({"success": True, "data": [1, 2]}).data == {}


class TestTicketService:
    """티켓 Mock 테스트."""

    @pytest.mark.asyncio
    async def test_open_and_list(self):
        """생성한 티켓은 pending 상태로 목록 맨 앞."""
        service = InMemoryTicketService()
        res = await service.open_ticket("abc", TicketRequest("desc", "other"), SecurityContext())

        assert res["success"]
        assert res["data"]["_id"].startswith("TICKET-")
        assert res["data"]["status"] == "pending"
        assert (await service.list_tickets())[0]["_id"] == res["data"]["_id"]
        assert await service.get_ticket(res["data"]["_id"]) == res["data"]

    @pytest.mark.asyncio
    async def test_requires_purchase_id(self):
        """구매 ID 없으면 실패."""
        service = InMemoryTicketService()
        res = await service.open_ticket("", TicketRequest("desc", "other"), SecurityContext())
        assert not res["success"]

    @pytest.mark.asyncio
    async def test_pagination(self):
        """페이지 단위 조회."""
        service = InMemoryTicketService(tickets=[{"_id": f"T{i}"} for i in range(5)])
        page = await service.list_tickets(page=2, limit=2)
        assert [t["_id"] for t in page] == ["T2", "T3"]


class TestWalletService:
    """지갑 Mock 테스트."""

    @pytest.mark.asyncio
    async def test_withdraw_is_idempotent(self):
        """같은 멱등 키는 한 번만 차감."""
        service = InMemoryWalletService(balance=100.0, pix_key_type="cpf", pix_key="52998224725")
        destination = PixDestination("cpf")

        first = await service.withdraw(40.0, destination, idempotency_key="wd_1")
        second = await service.withdraw(40.0, destination, idempotency_key="wd_1")

        assert first == second
        assert service.balance == 60.0

    @pytest.mark.asyncio
    async def test_withdraw_requires_key(self):
        """등록/입력된 키가 없으면 실패."""
        service = InMemoryWalletService(balance=100.0)
        res = await service.withdraw(10.0, PixDestination("cpf"), idempotency_key="wd_2")
        assert res["message"] == "Nenhuma chave PIX vinculada."

    @pytest.mark.asyncio
    async def test_withdraw_insufficient_balance(self):
        """잔액 부족."""
        service = InMemoryWalletService(balance=10.0)
        res = await service.withdraw(50.0, PixDestination("cpf", "52998224725"), idempotency_key="wd_3")
        assert res["message"].startswith("Saldo insuficiente.")

    @pytest.mark.asyncio
    async def test_bind_locks_key(self):
        """등록 후 잠김, 재등록 불가."""
        service = InMemoryWalletService()
        assert (await service.bind_pix_key("52998224725", "cpf"))["success"]

        pix = await service.get_pix_key()
        assert pix["data"] == {"type": "CPF", "keyMasked": "***.982.***-**", "locked": True}

        res = await service.bind_pix_key("11222333000181", "cnpj")
        assert not res["success"]


class TestPurchaseService:
    """주문 Mock 테스트."""

    @pytest.fixture
    def service(self):
        return InMemoryPurchaseService(
            purchases=[{"_id": "p1", "status": "paid"}, {"_id": "p2", "status": "shipped"}],
            sales=[{"_id": "s1", "status": "paid"}],
        )

    @pytest.mark.asyncio
    async def test_lifecycle(self, service):
        """paid → shipped → completed."""
        assert (await service.ship("s1"))["success"]
        assert (await service.confirm("s1"))["success"]
        assert service.orders["sales"][0]["status"] == "completed"

    @pytest.mark.asyncio
    async def test_cancel_only_before_shipping(self, service):
        """발송 후 취소 불가."""
        assert (await service.cancel("p1"))["success"]
        res = await service.cancel("p2")
        assert res["message"] == "Só é possível cancelar antes do envio."

    @pytest.mark.asyncio
    async def test_unknown_order(self, service):
        """없는 주문."""
        assert (await service.ship("nope"))["message"] == "Pedido não encontrado."


class TestDemoServices:
    """데모 서비스 묶음 테스트."""

    @pytest.mark.asyncio
    async def test_demo_data(self):
        """데모 데이터 구성."""
        services = build_demo_services()

        assert len(await services.purchases.list("purchases")) == 2
        assert (await services.wallet.get_wallet())["balance"] == 150.0
        assert services.navigator is not None
        assert (await services.fingerprint.get_fingerprint()).fingerprint == "demo-device"
