"""엔티티 추출 테스트."""

import pytest

from support_assistant.nlu import extract_entities, parse_amount

PURCHASE_ID = "64b7f0c2a1d3e4f5a6b7c8d9"


class TestParseAmount:
    """브라질 통화 표기 변환 테스트."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("1.234,56", 1234.56),
            ("50,00", 50.0),
            ("50", 50.0),
            ("12.5", 12.5),
            ("1.234", 1234.0),
            ("-50", -50.0),
            ("- 1.234,56", -1234.56),
        ],
    )
    def test_formats(self, raw, expected):
        """지원 표기."""
        assert parse_amount(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", ["", None, "abc"])
    def test_invalid(self, raw):
        """변환 불가 시 None."""
        assert parse_amount(raw) is None


class TestPurchaseId:
    """구매 ID 추출 테스트."""

    def test_in_sentence(self):
        """문장 안의 24자리 16진수."""
        entities = extract_entities(f"meu pedido {PURCHASE_ID} não chegou")
        assert entities.purchase_id == PURCHASE_ID

    def test_uppercase_is_normalized(self):
        """대문자 ID는 소문자로."""
        entities = extract_entities(PURCHASE_ID.upper())
        assert entities.purchase_id == PURCHASE_ID

    def test_digits_inside_id_are_not_reused(self):
        """ID 안의 숫자는 금액/주문 번호로 잡히지 않음."""
        entities = extract_entities(PURCHASE_ID)
        assert entities.amount is None
        assert entities.order_number is None

    def test_wrong_length(self):
        """23자리는 ID 아님."""
        assert extract_entities(PURCHASE_ID[:-1]).purchase_id is None


class TestOrderNumber:
    """주문 번호 추출 테스트."""

    @pytest.mark.parametrize(
        "text",
        ["pedido #12345", "Pedido 12345", "#12345", "cancelar pedido #12345", "venda #12345"],
    )
    def test_formats(self, text):
        """# 또는 키워드 뒤의 숫자."""
        assert extract_entities(text).order_number == "12345"

    def test_order_number_is_not_an_amount(self):
        """주문 번호로 소비된 숫자는 금액이 아님."""
        entities = extract_entities("Cancelar pedido #12345")
        assert entities.order_number == "12345"
        assert entities.amount is None


class TestAmount:
    """금액 추출 테스트."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Sacar R$ 1.234,56", 1234.56),
            ("sacar R$ 50,00", 50.0),
            ("quero sacar 50", 50.0),
            ("saque de 12.5", 12.5),
        ],
    )
    def test_amounts(self, text, expected):
        """여러 금액 표기."""
        assert extract_entities(text).amount == pytest.approx(expected)

    def test_no_amount(self):
        """숫자가 없으면 None."""
        assert extract_entities("quero sacar").amount is None

    @pytest.mark.parametrize(
        "text,expected",
        [("sacar -50", -50.0), ("sacar - 50", -50.0), ("sacar -R$ 50,00", -50.0), ("sacar R$ -50,00", -50.0)],
    )
    def test_negative_sign_kept(self, text, expected):
        """음수 부호는 유지 (검증 단계에서 거부)."""
        assert extract_entities(text).amount == pytest.approx(expected)

    def test_hyphen_inside_word_is_not_a_sign(self):
        """단어에 붙은 하이픈은 부호가 아님."""
        assert extract_entities("saque-50").amount == pytest.approx(50.0)


class TestPixKey:
    """PIX 키 추출 테스트."""

    def test_cpf_keyword(self):
        """CPF 키워드 뒤의 숫자."""
        entities = extract_entities("PIX CPF 52998224725")
        assert entities.pix_key_type == "cpf"
        assert entities.pix_key == "52998224725"
        assert entities.amount is None

    def test_formatted_cpf(self):
        """구두점이 있는 CPF."""
        entities = extract_entities("pix cpf 529.982.247-25")
        assert entities.pix_key == "52998224725"

    def test_spaced_keyword(self):
        """띄어 쓴 키워드."""
        entities = extract_entities("c p f 52998224725")
        assert entities.pix_key_type == "cpf"

    def test_cnpj_keyword(self):
        """CNPJ 키워드."""
        entities = extract_entities("PIX CNPJ 11.222.333/0001-81")
        assert entities.pix_key_type == "cnpj"
        assert entities.pix_key == "11222333000181"

    def test_short_key_still_extracted(self):
        """길이가 틀려도 키워드가 있으면 추출 (검증은 상태 관리자에서)."""
        entities = extract_entities("PIX CPF 123")
        assert entities.pix_key_type == "cpf"
        assert entities.pix_key == "123"
        assert entities.amount is None

    def test_keyword_wins_over_length(self):
        """키워드와 자릿수가 충돌하면 키워드 우선."""
        entities = extract_entities("cnpj 52998224725")
        assert entities.pix_key_type == "cnpj"
        assert entities.pix_key == "52998224725"

    @pytest.mark.parametrize(
        "text,key_type",
        [("52998224725", "cpf"), ("11222333000181", "cnpj")],
    )
    def test_inferred_by_length(self, text, key_type):
        """키워드가 없으면 자릿수로 추정."""
        entities = extract_entities(text)
        assert entities.pix_key_type == key_type
        assert entities.pix_key == text
        assert entities.amount is None

    def test_keyword_without_digits(self):
        """숫자 없는 키워드는 유형만."""
        entities = extract_entities("pix cpf")
        assert entities.pix_key_type == "cpf"
        assert entities.pix_key is None

    def test_keyword_without_key_keeps_amount(self):
        """키워드 뒤에 키가 없으면 다른 숫자는 금액으로 남음."""
        entities = extract_entities("quero sacar 50 reais no meu cpf")
        assert entities.pix_key_type == "cpf"
        assert entities.pix_key is None
        assert entities.amount == pytest.approx(50.0)

    def test_keyword_before_key_elsewhere(self):
        """키워드 뒤가 아닌 곳의 11자리 숫자는 키로 사용."""
        entities = extract_entities("meu cpf e 529.982.247-25")
        assert entities.pix_key_type == "cpf"
        assert entities.pix_key == "52998224725"
        assert entities.amount is None

    def test_inferred_key_consumes_only_its_digits(self):
        """추정된 키는 자기 숫자 영역만 소비."""
        entities = extract_entities("52998224725 por favor")
        assert entities.pix_key == "52998224725"
        assert entities.amount is None


class TestExtractEntities:
    """추출 전반 테스트."""

    @pytest.mark.parametrize("text", ["", None, "   ", "olá", "###", "R$"])
    def test_never_raises(self, text):
        """어떤 입력에도 예외 없음."""
        entities = extract_entities(text)
        assert entities.is_empty()

    def test_combined(self):
        """ID와 설명이 함께 있는 입력."""
        entities = extract_entities(f"Não recebi {PURCHASE_ID} pedido #12345")
        assert entities.purchase_id == PURCHASE_ID
        assert entities.order_number == "12345"
        assert entities.amount is None
