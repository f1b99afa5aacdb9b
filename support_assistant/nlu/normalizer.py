"""텍스트 정규화 모듈.

소문자화, 발음 구별 기호 제거(NFD 분해 후 결합 문자 삭제), 공백 정리를 수행합니다.
"""

from __future__ import annotations

import re
import unicodedata

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """사용자 입력을 비교 가능한 형태로 정규화.

    예: "  Não  RECEBI o Pedido " -> "nao recebi o pedido"

    실패하지 않는 전체 함수이며, 두 번 적용해도 결과가 같습니다.
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", str(text).lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE_RE.sub(" ", stripped).strip()
