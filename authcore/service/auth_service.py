import asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.clock import Clock, as_utc, utcnow
from core.config import Settings
from core.errors import (
    AuthError,
    EmailNotFound,
    InternalError,
    InvalidOrExpiredToken,
    RecertificationFailed,
    RefreshTokenMismatch,
    RefreshTokenNotFound,
    SocialLoginFailed,
    UserNotFound,
    WrongPassword,
)
from core.hashing import PasswordHasher
from core.logger import get_logger
from core.security import TokenIssuer
from models.users import Provider, User
from repository import user_repo
from schemas.auth import (
    AgreementFlags,
    RecertificationPatch,
    RegistrationResult,
    SessionResult,
    UserInfo,
)

logger = get_logger("auth")


class AuthService:
    """
    인증 / 세션 토큰 수명주기 (Session Manager)

    - 작업마다 세션을 새로 열고 session.begin() 안에서 실행
      → 성공 시 commit, 어떤 예외든 rollback, 세션은 모든 경로에서 반납
    - 비즈니스 실패(AuthError)는 그대로 올려보내고,
      예상치 못한 예외는 로그에 원인을 남긴 뒤 고정 메시지의 InternalError로 감싼다
    - bcrypt는 CPU를 오래 쓰므로 asyncio.to_thread로 이벤트 루프 밖에서 실행
    """

    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        hasher: PasswordHasher | None = None,
        issuer: TokenIssuer | None = None,
        clock: Clock = utcnow,
    ):
        self._session_factory = session_factory
        self._clock = clock
        self._hasher = hasher or PasswordHasher(settings.bcrypt_rounds)
        self._issuer = issuer or TokenIssuer(settings, clock)
        # 존재하지 않는 이메일로 로그인할 때도 bcrypt 한 번을 돌려서 응답 시간 차이를 없앰
        self._dummy_hash = self._hasher.hash("authcore-timing-equalization")

    # ===== 회원가입 =====

    async def register(
        self,
        email: str,
        password: str,
        agreements: AgreementFlags | None = None,
    ) -> RegistrationResult:
        """Local 회원가입 - 중복이면 DuplicateEmail"""
        agreements = agreements or AgreementFlags()
        hashed_password = await asyncio.to_thread(self._hasher.hash, password)

        try:
            async with self._session_factory() as db, db.begin():
                user = await user_repo.insert_local_user(db, email, hashed_password, agreements)
        except AuthError:
            raise
        except Exception as exc:
            logger.exception("registration failed")
            raise InternalError() from exc

        logger.info("user registered", extra={"extra_data": {"user_id": user.id}})
        return RegistrationResult(user_id=user.id)

    async def check_email(self, email: str) -> bool:
        """이메일 사용 여부 (제공자 무관) - True면 이미 사용 중"""
        try:
            async with self._session_factory() as db:
                return await user_repo.exists_by_email(db, email)
        except Exception as exc:
            logger.exception("email check failed")
            raise InternalError() from exc

    # ===== 로그인 =====

    async def login(self, email: str, password: str) -> SessionResult:
        """이메일 + 비밀번호 로그인

        1. (email, Local) 조회 - 없으면 EmailNotFound
        2. 비밀번호 검증 - 틀리면 WrongPassword (리프레시 상태는 건드리지 않음)
        3. 토큰 발급 + 리프레시 해시 저장
        4. 프로필 포함 사용자 정보와 함께 반환
        """
        try:
            async with self._session_factory() as db, db.begin():
                user = await user_repo.find_by_email_and_provider(db, email, Provider.LOCAL)
                if user is None or user.hashed_password is None:
                    await asyncio.to_thread(self._hasher.verify, password, self._dummy_hash)
                    logger.info("login rejected", extra={"extra_data": {"reason": "email_not_found"}})
                    raise EmailNotFound()

                verified = await asyncio.to_thread(self._hasher.verify, password, user.hashed_password)
                if not verified:
                    logger.info(
                        "login rejected",
                        extra={"extra_data": {"user_id": user.id, "reason": "wrong_password"}},
                    )
                    raise WrongPassword()

                result = await self._start_session(db, user)
        except AuthError:
            raise
        except Exception as exc:
            logger.exception("login failed")
            raise InternalError() from exc

        logger.info("login succeeded", extra={"extra_data": {"user_id": result.user_info.id}})
        return result

    async def social_login(self, email: str, provider: Provider) -> SessionResult:
        """소셜 로그인 - 없으면 가입시키고 로그인

        제공자 신원 검증은 호출자(OAuth 콜백)가 이미 끝냈다는 전제.
        어떤 이유로 실패하든 호출자에게는 SocialLoginFailed 하나로만 보인다 (원인은 로그에).
        """
        try:
            provider = Provider(provider)
        except ValueError as exc:
            logger.warning("social login rejected", extra={"extra_data": {"reason": "unknown_provider"}})
            raise SocialLoginFailed() from exc
        if provider is Provider.LOCAL:
            logger.warning("social login rejected", extra={"extra_data": {"reason": "local_provider"}})
            raise SocialLoginFailed()

        try:
            async with self._session_factory() as db, db.begin():
                user = await user_repo.upsert_social_user(db, email, provider)
                result = await self._start_session(db, user)
        except Exception as exc:
            logger.exception(
                "social login failed",
                extra={"extra_data": {"provider": provider.value, "cause": type(exc).__name__}},
            )
            raise SocialLoginFailed() from exc

        logger.info(
            "social login succeeded",
            extra={"extra_data": {"user_id": result.user_info.id, "provider": provider.value}},
        )
        return result

    async def _start_session(self, db: AsyncSession, user: User) -> SessionResult:
        """토큰 쌍 발급 → 리프레시 해시 저장 → 최신 사용자 정보 로딩"""
        access_token = self._issuer.issue_access_token(user.id, user.email)
        refresh_token = self._issuer.issue_refresh_token(user.id)
        refresh_hash = await asyncio.to_thread(self._hasher.hash, refresh_token)

        await user_repo.update_refresh_token(
            db, user.id, refresh_hash, self._issuer.refresh_expiry()
        )
        user_info = UserInfo.model_validate(await user_repo.find_by_id(db, user.id))

        return SessionResult(
            access_token=access_token,
            refresh_token=refresh_token,
            user_info=user_info,
        )

    # ===== 토큰 갱신 =====

    async def refresh(self, refresh_token: str) -> SessionResult:
        """리프레시 토큰으로 새 토큰 쌍 발급 (회전)

        서명/만료 검증이 실패하면 DB에 가기 전에 InvalidOrExpiredToken.
        성공하면 이전 리프레시 토큰은 즉시 무효 - 재사용 시 RefreshTokenMismatch.
        """
        claims = self._issuer.verify_refresh_token(refresh_token)

        try:
            async with self._session_factory() as db, db.begin():
                try:
                    user = await user_repo.find_by_id(db, claims.user_id)
                except UserNotFound as exc:
                    raise RefreshTokenNotFound() from exc

                stored_hash = user.refresh_token_hash
                if not stored_hash:
                    raise RefreshTokenNotFound()

                if user.refresh_expires_at and self._clock() > as_utc(user.refresh_expires_at):
                    logger.info(
                        "refresh rejected",
                        extra={"extra_data": {"user_id": user.id, "reason": "stored_expiry_passed"}},
                    )
                    raise InvalidOrExpiredToken()

                matched = await asyncio.to_thread(self._hasher.verify, refresh_token, stored_hash)
                if not matched:
                    logger.warning(
                        "refresh rejected",
                        extra={"extra_data": {"user_id": user.id, "reason": "token_mismatch"}},
                    )
                    raise RefreshTokenMismatch()

                access_token = self._issuer.issue_access_token(user.id, user.email)
                new_refresh_token = self._issuer.issue_refresh_token(user.id)
                new_hash = await asyncio.to_thread(self._hasher.hash, new_refresh_token)

                # 검증 이후 다른 요청이 먼저 회전시켰다면 0행 갱신 → 이 요청은 진 것
                rotated = await user_repo.update_refresh_token(
                    db,
                    user.id,
                    new_hash,
                    self._issuer.refresh_expiry(),
                    expected_hash=stored_hash,
                )
                if not rotated:
                    logger.warning(
                        "refresh rejected",
                        extra={"extra_data": {"user_id": user.id, "reason": "concurrent_rotation"}},
                    )
                    raise RefreshTokenMismatch()
        except AuthError:
            raise
        except Exception as exc:
            logger.exception("refresh failed")
            raise InternalError() from exc

        logger.info("refresh token rotated", extra={"extra_data": {"user_id": claims.user_id}})
        return SessionResult(access_token=access_token, refresh_token=new_refresh_token)

    # ===== 본인 재인증 =====

    async def recertify(self, user_id: str, patch: RecertificationPatch | dict) -> None:
        """재인증 후 이름/전화번호/생년월일 갱신 - 토큰과 무관"""
        try:
            if isinstance(patch, dict):
                patch = RecertificationPatch.model_validate(patch)
            async with self._session_factory() as db, db.begin():
                await user_repo.find_by_id(db, user_id)
                await user_repo.patch_attributes(db, user_id, patch)
        except UserNotFound:
            logger.info("recertification rejected", extra={"extra_data": {"user_id": user_id}})
            raise
        except Exception as exc:
            logger.exception("recertification failed", extra={"extra_data": {"user_id": user_id}})
            raise RecertificationFailed() from exc

        logger.info(
            "user recertified",
            extra={"extra_data": {"user_id": user_id, "fields": sorted(patch.model_fields_set)}},
        )

    # ===== 조회 =====

    async def get_user_info(self, user_id: str) -> UserInfo:
        """사용자 정보 조회 - 없으면 UserNotFound"""
        try:
            async with self._session_factory() as db:
                user = await user_repo.find_by_id(db, user_id)
                return UserInfo.model_validate(user)
        except AuthError:
            raise
        except Exception as exc:
            logger.exception("user lookup failed", extra={"extra_data": {"user_id": user_id}})
            raise InternalError() from exc

    async def authenticate(self, access_token: str) -> UserInfo:
        """액세스 토큰 검증 후 현재 사용자 반환 (HTTP 계층의 인증 의존성에서 사용)"""
        claims = self._issuer.verify_access_token(access_token)
        return await self.get_user_info(claims.user_id)
