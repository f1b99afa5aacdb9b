"""Core 모듈.

공통 예외 클래스와 로깅 설정을 제공합니다.
"""

from support_assistant.core.exceptions import (
    AppError,
    ExternalServiceError,
    NotFoundError,
    SessionNotFoundError,
    ValidationError,
)

__all__ = [
    "AppError",
    "ExternalServiceError",
    "NotFoundError",
    "SessionNotFoundError",
    "ValidationError",
]
