import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from jose import ExpiredSignatureError, JWTError, jwt

from core.clock import Clock, utcnow
from core.config import Settings
from core.errors import InvalidOrExpiredToken
from core.logger import get_logger

logger = get_logger("auth.token")

# 디코딩 시 반드시 있어야 하는 클레임
_DECODE_OPTIONS = {
    "require_exp": True,
    "require_sub": True,
    "require_jti": True,
}


@dataclass(frozen=True)
class AccessClaims:
    user_id: str
    email: str


@dataclass(frozen=True)
class RefreshClaims:
    user_id: str


class TokenIssuer:
    """
    액세스 / 리프레시 토큰 발급과 검증

    - access:  {sub, email, type="access"}  - ACCESS_SECRET_KEY로 서명, 짧은 TTL
    - refresh: {sub, type="refresh"}        - REFRESH_SECRET_KEY로 서명, 긴 TTL
    - 모든 토큰에 jti(랜덤 ID)를 넣어서 같은 초에 발급돼도 값이 겹치지 않음
      (겹치면 회전 후에도 이전 토큰 해시가 새 토큰과 일치해버림)

    검증은 서명 + 만료만 확인한다. DB는 보지 않음.
    """

    def __init__(self, settings: Settings, clock: Clock = utcnow):
        self._access_secret = settings.access_secret_key
        self._refresh_secret = settings.refresh_secret_key
        self._algorithm = settings.jwt_algorithm
        self._access_ttl = timedelta(minutes=settings.access_expire_minutes)
        self._refresh_ttl = timedelta(days=settings.refresh_expire_days)
        self._clock = clock

    def _sign(self, claims: dict, secret: str, ttl: timedelta) -> str:
        now = self._clock()
        payload = {
            **claims,
            "jti": uuid.uuid4().hex,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        return jwt.encode(payload, secret, algorithm=self._algorithm)

    def issue_access_token(self, user_id: str, email: str) -> str:
        return self._sign(
            {"sub": user_id, "email": email, "type": "access"},
            self._access_secret,
            self._access_ttl,
        )

    def issue_refresh_token(self, user_id: str) -> str:
        return self._sign(
            {"sub": user_id, "type": "refresh"},
            self._refresh_secret,
            self._refresh_ttl,
        )

    def refresh_expiry(self) -> datetime:
        """DB에 저장할 리프레시 만료 시각 (토큰 자체의 exp와 별개로 관리)"""
        return self._clock() + self._refresh_ttl

    def _decode(self, token: str, secret: str, expected_type: str) -> dict:
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self._algorithm],
                options=_DECODE_OPTIONS,
            )
        except ExpiredSignatureError as exc:
            logger.info("token expired", extra={"extra_data": {"token_type": expected_type}})
            raise InvalidOrExpiredToken() from exc
        except JWTError as exc:
            logger.info(
                "token rejected",
                extra={"extra_data": {"token_type": expected_type, "reason": str(exc)}},
            )
            raise InvalidOrExpiredToken() from exc

        if payload.get("type") != expected_type:
            logger.info(
                "token type mismatch",
                extra={"extra_data": {"token_type": expected_type, "actual": payload.get("type")}},
            )
            raise InvalidOrExpiredToken()
        return payload

    def verify_access_token(self, token: str) -> AccessClaims:
        payload = self._decode(token, self._access_secret, "access")
        email = payload.get("email")
        if not isinstance(email, str):
            raise InvalidOrExpiredToken()
        return AccessClaims(user_id=payload["sub"], email=email)

    def verify_refresh_token(self, token: str) -> RefreshClaims:
        payload = self._decode(token, self._refresh_secret, "refresh")
        return RefreshClaims(user_id=payload["sub"])
