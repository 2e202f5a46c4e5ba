from collections.abc import Callable
from datetime import datetime, timezone

# 시간 소스 - 테스트에서는 고정 시각을 돌려주는 함수로 교체
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """naive datetime(SQLite가 돌려주는 값)을 UTC aware로 맞춤"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
