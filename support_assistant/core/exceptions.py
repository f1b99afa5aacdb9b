"""커스텀 예외 클래스 모듈.

대화 엔진 전역에서 사용되는 예외 클래스를 정의합니다.
기본 메시지는 사용자에게 그대로 노출되므로 포르투갈어로 작성합니다.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class AppError(Exception):
    """애플리케이션 기본 예외.

    모든 커스텀 예외의 기반 클래스입니다.
    """

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"
    message: str = "Ocorreu um erro interno."

    def __init__(
        self,
        message: Optional[str] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """예외 정보를 딕셔너리로 반환."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class ValidationError(AppError):
    """슬롯 값 검증 실패 예외 (CPF/CNPJ, 금액 등)."""

    status_code = 400
    error_code = "VALIDATION_ERROR"
    message = "Valor inválido."


class NotFoundError(AppError):
    """참조한 주문/구매를 찾을 수 없음 예외."""

    status_code = 404
    error_code = "NOT_FOUND"
    message = "Não encontrei o registro informado."


class SessionNotFoundError(NotFoundError):
    """대화 세션을 찾을 수 없음 예외."""

    error_code = "SESSION_NOT_FOUND"
    message = "Sessão de atendimento não encontrada."


class ExternalServiceError(AppError):
    """외부 서비스 호출 실패 예외.

    엔진 경계 밖으로 전파되지 않으며, 디스패처가 응답 메시지로 변환합니다.
    """

    status_code = 502
    error_code = "EXTERNAL_SERVICE_ERROR"
    message = "Não foi possível concluir a operação agora."
