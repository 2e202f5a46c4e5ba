"""
인증 코어 조립 지점

HTTP 계층(범위 밖)은 프로세스 시작 시 build_auth_service()로 한 번 만들고,
종료 시 shutdown()으로 커넥션 풀을 정리하면 된다.

    settings = get_settings()
    engine = create_engine(settings)
    auth = build_auth_service(settings, engine)
    ...
    await shutdown(engine)
"""
from sqlalchemy.ext.asyncio import AsyncEngine

from core.clock import Clock, utcnow
from core.config import Settings
from core.database import Base, create_session_factory
from core.logger import get_logger
from service.auth_service import AuthService

# 메타데이터에 테이블 등록
import models.profile  # noqa: F401
import models.users  # noqa: F401

logger = get_logger("auth.bootstrap")


def build_auth_service(settings: Settings, engine: AsyncEngine, clock: Clock = utcnow) -> AuthService:
    """설정은 여기서 한 번 주입되고 이후 요청마다 다시 읽지 않는다"""
    logging_level = settings.log_level.upper()
    for name in ("auth", "auth.token", "auth.store", "auth.bootstrap"):
        get_logger(name).setLevel(logging_level)

    service = AuthService(settings, create_session_factory(engine), clock=clock)
    logger.info(
        "auth service ready",
        extra={"extra_data": {
            "access_expire_minutes": settings.access_expire_minutes,
            "refresh_expire_days": settings.refresh_expire_days,
            "bcrypt_rounds": settings.bcrypt_rounds,
        }},
    )
    return service


async def init_models(engine: AsyncEngine) -> None:
    """테이블 생성 (개발/테스트용 - 운영 스키마는 마이그레이션 도구가 관리)"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def shutdown(engine: AsyncEngine) -> None:
    # DB 연결 풀 정리
    await engine.dispose()
    logger.info("auth service stopped")
