"""대화 모듈.

대화 상태 관리, 추천 칩 생성, 슬롯 검증을 제공합니다.
외부 서비스를 호출하는 디스패처는 `support_assistant.dialog.dispatcher`에서 직접 가져옵니다.
"""

from .models import (
    ActionType,
    ActiveTab,
    ConversationTurn,
    DispatchOutcome,
    NavigateCommand,
    PendingAction,
    SessionContext,
    Speaker,
    SuggestionContext,
    SwitchTabCommand,
    TurnResult,
    UserRole,
)
from .state_manager import DialogStateManager, Step
from .suggestions import compute_suggestions

__all__ = [
    "ActionType",
    "ActiveTab",
    "ConversationTurn",
    "DispatchOutcome",
    "NavigateCommand",
    "PendingAction",
    "SessionContext",
    "Speaker",
    "SuggestionContext",
    "SwitchTabCommand",
    "TurnResult",
    "UserRole",
    "DialogStateManager",
    "Step",
    "compute_suggestions",
]
