from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database (운영: postgresql+asyncpg, 테스트: sqlite+aiosqlite)
    database_url: str
    db_echo: bool = False

    # JWT 설정 - access / refresh 시크릿을 분리해서 한쪽이 유출돼도 피해 범위를 제한
    # 시크릿은 기본값 없음 (환경변수 또는 .env 필수)
    access_secret_key: str
    refresh_secret_key: str
    jwt_algorithm: str = "HS256"
    access_expire_minutes: int = 60
    refresh_expire_days: int = 14

    # bcrypt work factor
    bcrypt_rounds: int = 10

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        # config.py -> core -> authcore -> 루트 아래의 .env 찾기
        env_file=Path(__file__).parent.parent.parent / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,     # 환경변수 대소문자 무시
        extra="ignore",
        frozen=True,              # 시작 시 한 번 읽고 이후 변경 불가
    )

    @model_validator(mode="after")
    def validate_security(self) -> "Settings":
        """보안 설정 검증 - 약한 설정으로는 기동하지 않음"""
        for name in ("access_secret_key", "refresh_secret_key"):
            if len(getattr(self, name)) < 32:
                raise ValueError(f"{name.upper()}는 32자 이상이어야 합니다.")
        if self.access_secret_key == self.refresh_secret_key:
            raise ValueError("ACCESS_SECRET_KEY와 REFRESH_SECRET_KEY는 서로 달라야 합니다.")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS는 4~31 범위여야 합니다.")
        if self.access_expire_minutes <= 0 or self.refresh_expire_days <= 0:
            raise ValueError("토큰 만료 시간은 0보다 커야 합니다.")
        return self


@lru_cache
def get_settings() -> Settings:
    """프로세스 시작 시 한 번만 생성되는 설정 인스턴스

    테스트에서 환경변수를 바꿨다면 get_settings.cache_clear() 호출
    """
    return Settings()
