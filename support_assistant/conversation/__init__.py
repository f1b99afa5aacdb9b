"""대화 세션 모듈.

세션(대화 기록, busy 플래그, 컨텍스트 갱신)과 세션 레지스트리를 제공합니다.
"""

from .manager import SessionManager, get_session_manager, reset_session_manager
from .models import MessageCreate, SessionCreate, TabUpdate, TurnResponse
from .session import GREETING, SupportSession

__all__ = [
    "SessionManager",
    "get_session_manager",
    "reset_session_manager",
    "MessageCreate",
    "SessionCreate",
    "TabUpdate",
    "TurnResponse",
    "GREETING",
    "SupportSession",
]
