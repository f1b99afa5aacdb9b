"""pytest 설정 및 공통 fixture."""

import pytest
from fastapi.testclient import TestClient

from api import app
from support_assistant.config import Config, DialogConfig
from support_assistant.conversation import SupportSession, reset_session_manager
from support_assistant.dialog.models import UserRole
from support_assistant.services import (
    InMemoryPurchaseService,
    InMemoryTicketService,
    InMemoryWalletService,
    RecordingNavigator,
    StaticFingerprintProvider,
    SupportServices,
)

# pytest-asyncio 모드 설정
pytest_plugins = ["pytest_asyncio"]

PURCHASE_ID = "64b7f0c2a1d3e4f5a6b7c8d9"
SECOND_PURCHASE_ID = "64b7f0c2a1d3e4f5a6b7c8da"
SALE_ID = "64b7f0c2a1d3e4f5a6b7c8db"
VALID_CPF = "52998224725"
VALID_CNPJ = "11222333000181"


@pytest.fixture(autouse=True)
def reset_singletons():
    """각 테스트 전/후에 Config, 세션 매니저 싱글톤 리셋."""
    Config.reset_instance()
    reset_session_manager()
    yield
    reset_session_manager()
    Config.reset_instance()


@pytest.fixture
def client():
    """FastAPI TestClient fixture."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def dialog_config():
    """기본 대화 설정."""
    return DialogConfig()


@pytest.fixture
def purchases_data():
    """테스트용 구매 목록."""
    return [
        {"_id": PURCHASE_ID, "orderNumber": 12345, "status": "shipped", "item": {"title": "Conta Premium"}},
        {"_id": SECOND_PURCHASE_ID, "orderNumber": 12346, "status": "paid", "item": {"title": "Gift Card"}},
    ]


@pytest.fixture
def sales_data():
    """테스트용 판매 목록."""
    return [
        {"_id": SALE_ID, "orderNumber": 22001, "status": "paid", "item": {"title": "Skin Rara"}},
    ]


@pytest.fixture
def services(purchases_data, sales_data):
    """인메모리 협력 서비스 묶음 (PIX 키 미등록, 잔액 150)."""
    return SupportServices(
        tickets=InMemoryTicketService(),
        wallet=InMemoryWalletService(balance=150.0),
        purchases=InMemoryPurchaseService(purchases=purchases_data, sales=sales_data),
        navigator=RecordingNavigator(),
        fingerprint=StaticFingerprintProvider("fp-test"),
    )


@pytest.fixture
def bound_services(services):
    """CPF PIX 키가 등록된 서비스 묶음."""
    services.wallet = InMemoryWalletService(balance=150.0, pix_key_type="cpf", pix_key=VALID_CPF)
    return services


@pytest.fixture
def make_session(dialog_config):
    """세션 생성 팩토리 (역할 지정 및 컨텍스트 프리페치)."""

    async def _make(services, role=None, refresh=True):
        session = SupportSession(services, config=dialog_config, user_id="user_001")
        if refresh:
            await session.refresh()
        if role is not None:
            session.state.role = UserRole(role)
        return session

    return _make
