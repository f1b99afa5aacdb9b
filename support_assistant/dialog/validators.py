"""슬롯 검증 및 표시 포맷 유틸리티.

검증 실패 시 ValidationError를 던지며, 메시지는 그대로 봇 응답으로 사용됩니다.
"""

from __future__ import annotations

import math
import re
from typing import Optional

from support_assistant.core.exceptions import ValidationError

CPF_LENGTH = 11
CNPJ_LENGTH = 14

_CNPJ_WEIGHTS_1 = (5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)
_CNPJ_WEIGHTS_2 = (6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)

_STATUS_LABELS = {
    "pending": "Pendente",
    "under_review": "Em análise",
    "in_review": "Em análise",
    "in_progress": "Em andamento",
    "open": "Aberto",
    "resolved": "Resolvido",
    "closed": "Fechado",
    "cancelled": "Cancelado",
    "canceled": "Cancelado",
    "failed": "Falhou",
    "shipped": "Enviado",
    "delivered": "Entregue",
    "completed": "Concluído",
}


def only_digits(value: str) -> str:
    return re.sub(r"\D", "", value or "")


def _cpf_check_digit(digits: str) -> int:
    weight = len(digits) + 1
    total = sum(int(d) * (weight - i) for i, d in enumerate(digits))
    rest = (total * 10) % 11
    return 0 if rest == 10 else rest


def _cnpj_check_digit(digits: str, weights: tuple) -> int:
    total = sum(int(d) * w for d, w in zip(digits, weights))
    rest = total % 11
    return 0 if rest < 2 else 11 - rest


def is_valid_cpf(value: str, checksum: bool = True) -> bool:
    """CPF 유효성 검사 (11자리, 동일 숫자 반복 불가, 검증 숫자)."""
    digits = only_digits(value)
    if len(digits) != CPF_LENGTH or digits == digits[0] * CPF_LENGTH:
        return False
    if not checksum:
        return True
    first = _cpf_check_digit(digits[:9])
    second = _cpf_check_digit(digits[:9] + str(first))
    return digits[9:] == f"{first}{second}"


def is_valid_cnpj(value: str, checksum: bool = True) -> bool:
    """CNPJ 유효성 검사 (14자리, 동일 숫자 반복 불가, 검증 숫자)."""
    digits = only_digits(value)
    if len(digits) != CNPJ_LENGTH or digits == digits[0] * CNPJ_LENGTH:
        return False
    if not checksum:
        return True
    first = _cnpj_check_digit(digits[:12], _CNPJ_WEIGHTS_1)
    second = _cnpj_check_digit(digits[:12] + str(first), _CNPJ_WEIGHTS_2)
    return digits[12:] == f"{first}{second}"


def validate_pix_key(key_type: str, key: str, checksum: bool = True) -> str:
    """PIX 키 검증.

    Returns:
        숫자만 남긴 키

    Raises:
        ValidationError: 길이 또는 검증 숫자가 잘못된 경우
    """
    digits = only_digits(key)
    if key_type == "cpf":
        if len(digits) != CPF_LENGTH:
            raise ValidationError("CPF inválido. Deve conter 11 dígitos.", details={"field": "pix_key"})
        if not is_valid_cpf(digits, checksum=checksum):
            raise ValidationError(
                "CPF inválido. Confira os dígitos e envie novamente.", details={"field": "pix_key"}
            )
        return digits
    if key_type == "cnpj":
        if len(digits) != CNPJ_LENGTH:
            raise ValidationError("CNPJ inválido. Deve conter 14 dígitos.", details={"field": "pix_key"})
        if not is_valid_cnpj(digits, checksum=checksum):
            raise ValidationError(
                "CNPJ inválido. Confira os dígitos e envie novamente.", details={"field": "pix_key"}
            )
        return digits
    raise ValidationError("Tipo de chave PIX não suportado. Use CPF ou CNPJ.", details={"field": "pix_key_type"})


def validate_amount(amount: Optional[float], max_amount: float) -> float:
    """출금 금액 검증 (0 초과, 최대 금액 이하, 유한값)."""
    if amount is None or not isinstance(amount, (int, float)) or not math.isfinite(amount):
        raise ValidationError("Informe um valor válido. Ex: R$ 50,00", details={"field": "amount"})
    if amount <= 0:
        raise ValidationError("O valor do saque deve ser maior que zero.", details={"field": "amount"})
    if amount > max_amount:
        raise ValidationError(
            f"O valor máximo por saque é {format_currency(max_amount)}.",
            details={"field": "amount", "max": max_amount},
        )
    return float(amount)


def sanitize_input(text: str, max_length: int = 500) -> str:
    """자유 입력 정리 (길이 제한, 꺾쇠 제거)."""
    return re.sub(r"[<>]", "", str(text or "")[:max_length]).strip()


def format_currency(value: float) -> str:
    """BRL 통화 표기. 1234.5 -> "R$ 1.234,50" """
    formatted = f"{abs(value):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    sign = "-" if value < 0 else ""
    return f"{sign}R$ {formatted}"


def mask_pix_key(key: str, key_type: str) -> str:
    """PIX 키 마스킹."""
    digits = only_digits(key)
    kind = (key_type or "").upper()
    if kind == "CPF" and len(digits) == CPF_LENGTH:
        return f"***.{digits[3:6]}.***-**"
    if kind == "CNPJ" and len(digits) == CNPJ_LENGTH:
        return f"**.***.{digits[5:8]}/****-**"
    return "***"


def translate_status(status: Optional[str]) -> str:
    """주문/티켓 상태 표시명."""
    if not status:
        return "Desconhecido"
    return _STATUS_LABELS.get(status, status.replace("_", " ").capitalize())
