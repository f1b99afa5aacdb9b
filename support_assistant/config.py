"""통합 설정 로더 모듈.

YAML 설정 파일(app.yaml, dialog.yaml)을 로드하고 관리합니다.
환경변수 오버라이드를 지원합니다.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


# 기본 설정 디렉토리
DEFAULT_CONFIG_DIR = Path("configs")


def load_yaml(path: Path | str) -> Dict[str, Any]:
    """YAML 파일 로드."""
    path = Path(path)
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_env_or_default(key: str, default: Any) -> Any:
    """환경변수 또는 기본값 반환."""
    env_val = os.environ.get(key)
    if env_val is not None:
        # 타입 변환 (bool은 int의 하위 타입이므로 먼저 검사)
        if isinstance(default, bool):
            return env_val.lower() in ("true", "1", "yes")
        if isinstance(default, int):
            return int(env_val)
        if isinstance(default, float):
            return float(env_val)
        return env_val
    return default


@dataclass
class AppConfig:
    """앱 전역 설정."""

    name: str = "support-assistant"
    version: str = "1.0.0"
    description: str = "마켓플레이스 고객지원 대화 엔진"
    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    log_json: bool = True
    log_file: Optional[str] = None


@dataclass
class DialogConfig:
    """대화 엔진 설정."""

    # 추천 칩
    max_suggestions: int = 10
    withdraw_presets: List[int] = field(default_factory=lambda: [25, 50, 100, 200])
    withdraw_suggestion_min: int = 25
    withdraw_suggestion_max: int = 200
    # 슬롯 검증
    max_withdraw_amount: float = 100000.0
    description_max_length: int = 500
    validate_document_checksum: bool = True
    # 확인 절차
    confirm_withdraw: bool = True
    confirm_cancel_order: bool = True
    # 컨텍스트 프리페치
    orders_prefetch_limit: int = 5
    tickets_page_size: int = 20
    recent_orders_in_greeting: int = 3


class Config:
    """통합 설정 클래스."""

    _instance: Optional["Config"] = None

    def __init__(self, config_dir: Path | str = DEFAULT_CONFIG_DIR):
        self.config_dir = Path(config_dir)
        self._app: Optional[AppConfig] = None
        self._dialog: Optional[DialogConfig] = None
        self._raw: Dict[str, Dict[str, Any]] = {}
        self._load_all()

    @classmethod
    def get_instance(cls, config_dir: Path | str = DEFAULT_CONFIG_DIR) -> "Config":
        """싱글톤 인스턴스 반환."""
        if cls._instance is None:
            cls._instance = cls(config_dir)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """싱글톤 인스턴스 리셋 (테스트용)."""
        cls._instance = None

    def _load_all(self) -> None:
        """모든 설정 파일 로드."""
        self._raw["app"] = load_yaml(self.config_dir / "app.yaml")
        self._raw["dialog"] = load_yaml(self.config_dir / "dialog.yaml")

    @property
    def app(self) -> AppConfig:
        """앱 설정."""
        if self._app is None:
            raw = self._raw.get("app", {})
            app_cfg = raw.get("app", {})
            server_cfg = raw.get("server", {})
            logging_cfg = raw.get("logging", {})

            self._app = AppConfig(
                name=app_cfg.get("name", "support-assistant"),
                version=app_cfg.get("version", "1.0.0"),
                description=app_cfg.get("description", ""),
                environment=get_env_or_default("APP_ENV", app_cfg.get("environment", "development")),
                host=get_env_or_default("APP_HOST", server_cfg.get("host", "0.0.0.0")),
                port=get_env_or_default("APP_PORT", server_cfg.get("port", 8000)),
                log_level=get_env_or_default("LOG_LEVEL", logging_cfg.get("level", "INFO")),
                log_json=get_env_or_default("LOG_JSON", logging_cfg.get("json", True)),
                log_file=logging_cfg.get("file"),
            )
        return self._app

    @property
    def dialog(self) -> DialogConfig:
        """대화 엔진 설정."""
        if self._dialog is None:
            raw = self._raw.get("dialog", {})
            suggestions = raw.get("suggestions", {})
            slots = raw.get("slots", {})
            confirmation = raw.get("confirmation", {})
            prefetch = raw.get("prefetch", {})

            self._dialog = DialogConfig(
                max_suggestions=suggestions.get("max_items", 10),
                withdraw_presets=suggestions.get("withdraw_presets", [25, 50, 100, 200]),
                withdraw_suggestion_min=suggestions.get("withdraw_min", 25),
                withdraw_suggestion_max=suggestions.get("withdraw_max", 200),
                max_withdraw_amount=get_env_or_default(
                    "SUPPORT_MAX_WITHDRAW_AMOUNT", float(slots.get("max_withdraw_amount", 100000.0))
                ),
                description_max_length=slots.get("description_max_length", 500),
                validate_document_checksum=get_env_or_default(
                    "SUPPORT_VALIDATE_CHECKSUM", slots.get("validate_document_checksum", True)
                ),
                confirm_withdraw=confirmation.get("withdraw", True),
                confirm_cancel_order=confirmation.get("cancel_order", True),
                orders_prefetch_limit=prefetch.get("orders_limit", 5),
                tickets_page_size=prefetch.get("tickets_limit", 20),
                recent_orders_in_greeting=prefetch.get("recent_orders_in_greeting", 3),
            )
        return self._dialog

    def get_raw(self, section: str) -> Dict[str, Any]:
        """원시 설정 데이터 반환."""
        return self._raw.get(section, {})


# 편의 함수
def get_config(config_dir: Path | str = DEFAULT_CONFIG_DIR) -> Config:
    """설정 인스턴스 반환."""
    return Config.get_instance(config_dir)
