"""자연어 이해(NLU) 모듈.

텍스트 정규화, 엔티티 추출, 규칙 기반 의도 분류를 제공합니다.
"""

from .entities import ExtractedEntities, extract_entities, parse_amount
from .intent_classifier import (
    INTENT_RULES,
    Intent,
    IntentResult,
    classify,
    classify_intent,
    is_affirmative,
    is_negative,
    is_role_allowed,
)
from .normalizer import normalize_text

__all__ = [
    "ExtractedEntities",
    "extract_entities",
    "parse_amount",
    "INTENT_RULES",
    "Intent",
    "IntentResult",
    "classify",
    "classify_intent",
    "is_affirmative",
    "is_negative",
    "is_role_allowed",
    "normalize_text",
]
