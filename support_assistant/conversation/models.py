"""대화 세션 API 모델 정의.

호스트 UI와 주고받는 요청/응답 스키마를 정의합니다.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from support_assistant.dialog.models import (
    ActiveTab,
    Command,
    ConversationTurn,
    NavigateCommand,
    PendingAction,
    TurnResult,
)


# ============================================
# 요청
# ============================================


class SessionCreate(BaseModel):
    """세션 생성 요청."""

    user_id: Optional[str] = None


class MessageCreate(BaseModel):
    """메시지 전송 요청.

    빈 문자열도 허용합니다 (선택 설명을 비워서 보내는 흐름).
    """

    content: str = Field("", max_length=2000)


class TabUpdate(BaseModel):
    """활성 탭 변경 요청."""

    tab: ActiveTab


# ============================================
# 응답
# ============================================


class CommandResponse(BaseModel):
    """호스트 UI 명령."""

    type: str  # navigate, switch_tab
    path: Optional[str] = None
    tab: Optional[str] = None

    @classmethod
    def from_command(cls, command: Command) -> "CommandResponse":
        if isinstance(command, NavigateCommand):
            return cls(type="navigate", path=command.path)
        return cls(type="switch_tab", tab=command.tab.value)


class TurnResponse(BaseModel):
    """메시지 처리 결과."""

    session_id: str
    accepted: bool
    replies: List[str] = Field(default_factory=list)
    commands: List[CommandResponse] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, session_id: str, result: TurnResult) -> "TurnResponse":
        return cls(
            session_id=session_id,
            accepted=result.accepted,
            replies=result.replies,
            commands=[CommandResponse.from_command(c) for c in result.commands],
            suggestions=result.suggestions,
        )


class TurnMessage(BaseModel):
    """대화 기록 항목."""

    speaker: str  # bot, user
    text: str

    @classmethod
    def from_turn(cls, turn: ConversationTurn) -> "TurnMessage":
        return cls(speaker=turn.speaker.value, text=turn.text)


class PendingActionResponse(BaseModel):
    """진행 중 작업 요약."""

    type: str
    confirm_required: bool = False
    confirmation_prompted: bool = False
    failed_attempts: int = 0

    @classmethod
    def from_action(cls, action: PendingAction) -> "PendingActionResponse":
        return cls(
            type=action.type.value,
            confirm_required=action.confirm_required,
            confirmation_prompted=action.confirmation_prompted,
            failed_attempts=action.failed_attempts,
        )


class SessionResponse(BaseModel):
    """세션 응답."""

    id: str
    user_id: Optional[str] = None
    role: str
    active_tab: str
    busy: bool = False
    wallet_balance: Optional[float] = None
    open_tickets: int = 0
    pending_action: Optional[PendingActionResponse] = None
    suggestions: List[str] = Field(default_factory=list)
    created_at: str


class SessionDetailResponse(BaseModel):
    """세션 상세 응답 (대화 기록 포함)."""

    session: SessionResponse
    turns: List[TurnMessage]
