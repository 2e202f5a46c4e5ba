import logging
import json
import uuid
from datetime import datetime, timezone
from contextvars import ContextVar

# 호출 단위(요청) 고유 ID - HTTP 계층이 set 하면 인증 코어 로그에도 그대로 찍힘
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

# 로그에 절대 남기면 안 되는 키 (평문 비밀번호, 토큰, 해시)
_REDACTED_KEYS = frozenset({
    "password",
    "hashed_password",
    "refresh_token",
    "refresh_token_hash",
    "access_token",
})


class JsonFormatter(logging.Formatter):
    """
    로그를 JSON 한 줄로 출력하는 포매터

    {"timestamp": "...", "level": "INFO", "message": "login succeeded",
     "logger": "auth", "request_id": "abc-123", "user_id": "..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "request_id": request_id_var.get("-"),
        }

        # 추가 필드 병합 (user_id, provider, reason 등) - 민감 필드는 가림
        if hasattr(record, "extra_data"):
            for key, value in record.extra_data.items():
                log_data[key] = "***" if key in _REDACTED_KEYS else value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def get_logger(name: str, level: str | int = logging.INFO) -> logging.Logger:
    """구조화된 JSON 로거 생성"""
    logger = logging.getLogger(name)

    # 중복 핸들러 방지
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(level)
        # "auth.token" 같은 하위 로거가 상위 "auth" 핸들러로 한 번 더 찍히지 않게
        logger.propagate = False

    return logger


def generate_request_id() -> str:
    """호출별 고유 추적 ID 생성"""
    return str(uuid.uuid4())[:8]  # 짧게 8자만 사용
