"""
Credential Store - users 테이블 접근

트랜잭션은 호출하는 쪽(AuthService)이 소유한다. 여기서는 commit 하지 않고 flush 까지만.
동시 가입 경쟁은 (email, provider) 유니크 제약으로 판정하고, 사전 조회는 최적화일 뿐이다.
"""
from datetime import datetime
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import DuplicateEmail, UpdateFailed, UserNotFound
from core.logger import get_logger
from models.users import Provider, User
from schemas.auth import AgreementFlags, RecertificationPatch

logger = get_logger("auth.store")


async def find_by_email_and_provider(db: AsyncSession, email: str, provider: Provider) -> User | None:
    """(email, provider)로 유저 조회"""
    result = await db.execute(
        select(User).where(User.email == email, User.provider == provider)
    )
    return result.scalars().first()


async def find_by_id(db: AsyncSession, user_id: str) -> User:
    """id로 유저 조회 (프로필 포함) - 없으면 UserNotFound"""
    # populate_existing: 같은 세션에서 방금 갱신/생성한 객체도 DB 값과 프로필로 다시 채움
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .execution_options(populate_existing=True)
    )
    user = result.scalars().first()
    if user is None:
        raise UserNotFound()
    return user


async def exists_by_email(db: AsyncSession, email: str) -> bool:
    """제공자와 무관하게 이메일 사용 여부 확인"""
    result = await db.execute(select(User.id).where(User.email == email).limit(1))
    return result.first() is not None


async def insert_local_user(
    db: AsyncSession,
    email: str,
    hashed_password: str,
    agreements: AgreementFlags,
) -> User:
    """Local 유저 저장 - 이미 있으면 DuplicateEmail"""
    # 1. 사전 중복 확인 (대부분의 중복은 여기서 걸러짐)
    if await find_by_email_and_provider(db, email, Provider.LOCAL):
        raise DuplicateEmail()

    user = User(
        email=email,
        provider=Provider.LOCAL,
        hashed_password=hashed_password,
        **agreements.model_dump(),
    )

    # 2. SAVEPOINT 안에서 INSERT - 동시에 들어온 가입은 유니크 제약에서 걸림
    try:
        async with db.begin_nested():
            db.add(user)
            await db.flush()
    except IntegrityError as exc:
        logger.info("duplicate local registration rejected by constraint")
        raise DuplicateEmail() from exc

    return user


async def upsert_social_user(db: AsyncSession, email: str, provider: Provider) -> User:
    """소셜 유저 조회 또는 생성 - 같은 (email, provider)로 몇 번 불러도 한 행만 존재"""
    user = await find_by_email_and_provider(db, email, provider)
    if user:
        return user

    user = User(email=email, provider=provider)
    try:
        async with db.begin_nested():
            db.add(user)
            await db.flush()
    except IntegrityError:
        # 동시 요청이 먼저 만들었음 → 그 행을 그대로 사용
        logger.info(
            "concurrent social signup detected, reusing existing row",
            extra={"extra_data": {"provider": provider.value}},
        )
        user = await find_by_email_and_provider(db, email, provider)
        if user is None:
            raise
        return user

    logger.info(
        "social user created",
        extra={"extra_data": {"user_id": user.id, "provider": provider.value}},
    )
    return user


async def update_refresh_token(
    db: AsyncSession,
    user_id: str,
    refresh_token_hash: str | None,
    expires_at: datetime | None,
    expected_hash: str | None = None,
) -> bool:
    """리프레시 토큰 해시 + 만료 시각 덮어쓰기

    expected_hash를 주면 현재 저장된 해시가 그 값일 때만 갱신 (compare-and-swap).
    같은 토큰으로 동시에 refresh 해도 한쪽만 성공한다.
    Returns:
        갱신된 행이 있으면 True
    """
    stmt = update(User).where(User.id == user_id)
    if expected_hash is not None:
        stmt = stmt.where(User.refresh_token_hash == expected_hash)
    stmt = stmt.values(
        refresh_token_hash=refresh_token_hash,
        refresh_expires_at=expires_at,
    )

    result = await db.execute(stmt)
    return result.rowcount > 0


async def patch_attributes(db: AsyncSession, user_id: str, patch: RecertificationPatch) -> None:
    """보낸 필드만 부분 갱신"""
    values = patch.model_dump(exclude_unset=True)
    if not values:
        return

    try:
        await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(**values)
        )
    except SQLAlchemyError as exc:
        logger.exception(
            "user attribute update failed",
            extra={"extra_data": {"user_id": user_id, "fields": sorted(values)}},
        )
        raise UpdateFailed() from exc
