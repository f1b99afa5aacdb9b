"""로깅 모듈 테스트."""

import json
import logging
import sys

import pytest

from support_assistant.core.logging import (
    NO_CONTEXT,
    PLAIN_FORMAT,
    ContextFilter,
    ContextLogger,
    JSONFormatter,
    current_context,
    get_logger,
    get_session_id,
    get_user_id,
    log_context,
    session_id_var,
    setup_logging,
    user_id_var,
)


def _record(msg="테스트", exc_info=None):
    return logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="/test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


@pytest.fixture(autouse=True)
def clear_context():
    """각 테스트 전 컨텍스트 초기화."""
    session_token = session_id_var.set(None)
    user_token = user_id_var.set(None)
    yield
    user_id_var.reset(user_token)
    session_id_var.reset(session_token)


class TestLogContext:
    """log_context 테스트."""

    def test_sets_values_inside_block(self):
        """블록 안에서 세션/사용자 ID 설정."""
        with log_context("sess-123", "user_001"):
            assert get_session_id() == "sess-123"
            assert get_user_id() == "user_001"
            assert current_context() == {"session_id": "sess-123", "user_id": "user_001"}

    def test_restores_previous_values(self):
        """블록이 끝나면 이전 값 복원 (중첩 포함)."""
        with log_context("outer", "user_a"):
            with log_context("inner"):
                assert get_session_id() == "inner"
                assert get_user_id() is None
            assert get_session_id() == "outer"
            assert get_user_id() == "user_a"
        assert get_session_id() is None
        assert current_context() == {}

    def test_restores_on_exception(self):
        """예외가 나도 컨텍스트 복원."""
        with pytest.raises(RuntimeError):
            with log_context("sess-err"):
                raise RuntimeError("실패")
        assert get_session_id() is None


class TestContextFilter:
    """ContextFilter 테스트."""

    def test_fills_from_context(self):
        """현재 컨텍스트 값으로 레코드 속성 채움."""
        record = _record()
        with log_context("sess-f", "user_f"):
            assert ContextFilter().filter(record)
        assert record.session_id == "sess-f"
        assert record.user_id == "user_f"

    def test_default_without_context(self):
        """컨텍스트가 없으면 기본값."""
        record = _record()
        ContextFilter().filter(record)
        assert record.session_id == NO_CONTEXT
        assert record.user_id == NO_CONTEXT

    def test_explicit_value_wins(self):
        """레코드에 이미 있는 값이 우선."""
        record = _record()
        record.session_id = "sess-extra"
        with log_context("sess-ctx"):
            ContextFilter().filter(record)
        assert record.session_id == "sess-extra"

    def test_plain_format_shows_session(self):
        """텍스트 포맷에 세션 ID 표시."""
        record = _record("턴 처리")
        with log_context("sess-plain"):
            ContextFilter().filter(record)
        line = logging.Formatter(PLAIN_FORMAT).format(record)
        assert "[sess-plain]" in line
        assert line.endswith("test: 턴 처리")


class TestJSONFormatter:
    """JSON 포매터 테스트."""

    def test_format_basic_log(self):
        """기본 로그 포맷."""
        data = json.loads(JSONFormatter().format(_record("테스트 메시지")))

        assert data["level"] == "INFO"
        assert data["logger"] == "test"
        assert data["message"] == "테스트 메시지"
        assert "timestamp" in data
        assert data["source"]["line"] == 10
        assert "session_id" not in data

    def test_format_with_context(self):
        """세션/사용자 ID 포함."""
        with log_context("sess-456", "user_789"):
            data = json.loads(JSONFormatter().format(_record()))

        assert data["session_id"] == "sess-456"
        assert data["user_id"] == "user_789"

    def test_format_skips_placeholder(self):
        """필터 기본값은 JSON에 넣지 않음."""
        record = _record()
        ContextFilter().filter(record)
        data = json.loads(JSONFormatter().format(record))

        assert "session_id" not in data
        assert "user_id" not in data

    def test_format_with_extra_fields(self):
        """추가 필드 병합."""
        record = _record()
        record.extra_fields = {"intent": "withdraw"}
        data = json.loads(JSONFormatter().format(record))

        assert data["intent"] == "withdraw"

    def test_format_with_exception(self):
        """예외 정보 포함."""
        try:
            raise ValueError("테스트 예외")
        except ValueError:
            record = _record(exc_info=sys.exc_info())
        data = json.loads(JSONFormatter().format(record))

        assert "ValueError" in data["exception"]


class TestLoggerSetup:
    """로거 설정 테스트."""

    def test_get_logger(self):
        """컨텍스트 로거 반환."""
        logger = get_logger("support_assistant.test")
        assert isinstance(logger, ContextLogger)

    def test_context_logger_adds_session(self):
        """컨텍스트 로거가 세션 ID를 extra에 추가."""
        logger = get_logger("support_assistant.test")
        with log_context("sess-ctx"):
            _, kwargs = logger.process("msg", {"extra": {"intent": "withdraw"}})
        assert kwargs["extra"] == {"session_id": "sess-ctx", "intent": "withdraw"}

    @pytest.mark.parametrize("json_format", [True, False])
    def test_setup_logging(self, json_format):
        """루트 로거 핸들러 구성."""
        root = setup_logging(level="DEBUG", json_format=json_format)

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        handler = root.handlers[0]
        assert isinstance(handler.formatter, JSONFormatter) == json_format
        assert any(isinstance(f, ContextFilter) for f in handler.filters)

    def test_setup_logging_with_file(self, tmp_path):
        """파일 핸들러 추가."""
        log_file = tmp_path / "logs" / "app.log"
        root = setup_logging(level="INFO", log_file=str(log_file))

        assert len(root.handlers) == 2
        assert log_file.parent.exists()
        for handler in root.handlers[1:]:
            handler.close()
