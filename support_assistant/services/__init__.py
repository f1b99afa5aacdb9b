"""외부 협력 서비스 (티켓, 지갑, 주문) 인터페이스와 Mock 구현."""

from .interfaces import (
    FingerprintProvider,
    Navigator,
    PixDestination,
    PurchaseService,
    SecurityContext,
    ServiceResult,
    SupportServices,
    TicketRequest,
    TicketService,
    WalletService,
)
from .mock import (
    InMemoryPurchaseService,
    InMemoryTicketService,
    InMemoryWalletService,
    RecordingNavigator,
    StaticFingerprintProvider,
    build_demo_services,
)

__all__ = [
    "FingerprintProvider",
    "Navigator",
    "PixDestination",
    "PurchaseService",
    "SecurityContext",
    "ServiceResult",
    "SupportServices",
    "TicketRequest",
    "TicketService",
    "WalletService",
    "InMemoryPurchaseService",
    "InMemoryTicketService",
    "InMemoryWalletService",
    "RecordingNavigator",
    "StaticFingerprintProvider",
    "build_demo_services",
]
