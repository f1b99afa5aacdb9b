"""엔티티 추출 모듈.

정규화된 텍스트에서 구매 ID, 주문 번호, 금액, PIX 키(CPF/CNPJ)를 추출합니다.
각 필드는 독립적으로 선택 사항이며, 추출은 절대 예외를 던지지 않습니다.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .normalizer import normalize_text

logger = logging.getLogger(__name__)

Span = Tuple[int, int]

PURCHASE_ID_PATTERN = re.compile(r"\b([a-f0-9]{24})\b")
ORDER_NUMBER_PATTERN = re.compile(r"(?:\b(?:pedido|venda|order)\b|#)\s*#?(\d{3,})")

# 금액: "1.234,56" / "50,00" / "50" / "12.5" / "-50" (부호 유지, 검증에서 거부)
# 다른 추출기가 이미 소비한 영역은 미리 가린 뒤 검색합니다.
AMOUNT_PATTERN = re.compile(
    r"(?<![\w#.,])(?:(-)\s*)?(?:r\$\s*)?(-\s*)?"
    r"(\d{1,3}(?:\.\d{3})+(?:,\d{1,2})?|\d+,\d{1,2}|\d+\.\d{1,2}|\d+)"
    r"(?![\w.,]*\d)(?![a-z])"
)
DIGIT_PATTERN = re.compile(r"\d")

CNPJ_KEYWORD_PATTERN = re.compile(r"\bc\s*n\s*p\s*j\b")
CPF_KEYWORD_PATTERN = re.compile(r"\bc\s*p\s*f\b")
KEY_DIGITS_PATTERN = re.compile(r"^[\s:=-]*(\d[\d.\-/ ]*\d|\d)")

CPF_LENGTH = 11
CNPJ_LENGTH = 14


@dataclass(frozen=True)
class ExtractedEntities:
    """엔티티 추출 결과."""

    purchase_id: Optional[str] = None
    order_number: Optional[str] = None
    amount: Optional[float] = None
    pix_key_type: Optional[str] = None  # "cpf" | "cnpj"
    pix_key: Optional[str] = None

    def is_empty(self) -> bool:
        return not any(
            (self.purchase_id, self.order_number, self.amount, self.pix_key_type, self.pix_key)
        )


def _mask(text: str, spans: List[Span]) -> str:
    """지정 영역을 공백으로 치환 (인덱스 보존)."""
    chars = list(text)
    for start, end in spans:
        for i in range(start, end):
            chars[i] = " "
    return "".join(chars)


def parse_amount(raw: Optional[str]) -> Optional[float]:
    """브라질 통화 표기 문자열을 숫자로 변환.

    "1.234,56" -> 1234.56, "50,00" -> 50.0, "12.5" -> 12.5, "1.234" -> 1234.0, "-50" -> -50.0
    """
    if not raw:
        return None
    s = raw.strip()
    negative = s.startswith("-")
    if negative:
        s = s[1:].strip()
    if "," in s:
        s = s.replace(".", "").replace(",", ".")
    elif re.fullmatch(r"\d{1,3}(?:\.\d{3})+", s):
        s = s.replace(".", "")
    try:
        value = float(s)
    except ValueError:
        return None
    if value != value or value in (float("inf"), float("-inf")):
        return None
    return -value if negative else value


def _digits_with_span(text: str) -> Tuple[str, Optional[Span]]:
    """텍스트의 모든 숫자와 그 숫자들이 차지한 최소 영역."""
    positions = [m.start() for m in DIGIT_PATTERN.finditer(text)]
    if not positions:
        return "", None
    return "".join(text[i] for i in positions), (positions[0], positions[-1] + 1)


def _extract_pix(norm: str) -> Tuple[Optional[str], Optional[str], Optional[Span]]:
    """PIX 키 유형/값 추출.

    키워드(cpf/cnpj)가 있으면 자릿수와 무관하게 키워드가 우선합니다.
    키워드 뒤에 숫자가 없으면 텍스트 전체 숫자가 정확히 11/14자리일 때만 키로 사용합니다.
    키워드가 없으면 전체 숫자 길이(11 -> cpf, 14 -> cnpj)로 추정합니다.
    키로 쓰인 숫자 영역만 소비하므로 나머지 숫자는 금액 추출에 남습니다.

    Returns:
        (키 유형, 키 숫자열, 키가 차지한 영역)
    """
    keyword_match = CNPJ_KEYWORD_PATTERN.search(norm)
    key_type = "cnpj" if keyword_match else None
    if keyword_match is None:
        keyword_match = CPF_KEYWORD_PATTERN.search(norm)
        key_type = "cpf" if keyword_match else None

    if keyword_match is not None:
        tail = norm[keyword_match.end():]
        digits_match = KEY_DIGITS_PATTERN.search(tail)
        if digits_match:
            start = keyword_match.end() + digits_match.start(1)
            end = keyword_match.end() + digits_match.end(1)
            return key_type, re.sub(r"\D", "", digits_match.group(1)), (start, end)
        all_digits, span = _digits_with_span(norm)
        if len(all_digits) in (CPF_LENGTH, CNPJ_LENGTH):
            return key_type, all_digits, span
        return key_type, None, None

    all_digits, span = _digits_with_span(norm)
    if len(all_digits) == CPF_LENGTH:
        return "cpf", all_digits, span
    if len(all_digits) == CNPJ_LENGTH:
        return "cnpj", all_digits, span
    return None, None, None


def extract_entities(text: str) -> ExtractedEntities:
    """텍스트에서 엔티티 추출.

    Args:
        text: 원문 또는 정규화된 텍스트 (내부에서 다시 정규화하며, 정규화는 멱등)

    Returns:
        ExtractedEntities (없는 필드는 None)
    """
    norm = normalize_text(text)
    if not norm:
        return ExtractedEntities()

    consumed: List[Span] = []

    purchase_id = None
    id_match = PURCHASE_ID_PATTERN.search(norm)
    if id_match:
        purchase_id = id_match.group(1)
        consumed.append(id_match.span())

    # 구매 ID 안의 숫자가 주문 번호/키로 잡히지 않도록 가린 뒤 검색
    scan = _mask(norm, consumed)

    order_number = None
    order_match = ORDER_NUMBER_PATTERN.search(scan)
    if order_match:
        order_number = order_match.group(1)
        consumed.append(order_match.span())

    pix_key_type, pix_key, pix_span = _extract_pix(_mask(norm, consumed))
    if pix_span:
        consumed.append(pix_span)

    amount = None
    amount_match = AMOUNT_PATTERN.search(_mask(norm, consumed))
    if amount_match:
        sign = "-" if amount_match.group(1) or amount_match.group(2) else ""
        amount = parse_amount(sign + amount_match.group(3))

    entities = ExtractedEntities(
        purchase_id=purchase_id,
        order_number=order_number,
        amount=amount,
        pix_key_type=pix_key_type,
        pix_key=pix_key,
    )
    if not entities.is_empty():
        logger.debug(f"엔티티 추출: {entities}")
    return entities
