import enum
import secrets
import uuid
from datetime import datetime
from sqlalchemy import Boolean, DateTime, Enum, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from models.base import TimestampMixin
from models.profile import Profile
from core.database import Base


class Provider(str, enum.Enum):
    """로그인 제공자 - 신원은 (email, provider) 쌍으로 구분"""
    LOCAL = "Local"
    NAVER = "Naver"
    KAKAO = "Kakao"
    GOOGLE = "Google"
    APPLE = "Apple"


class UserStatus(str, enum.Enum):
    ACTIVE = "Active"
    RESTRICTION = "Restriction"
    WITHDRAWAL = "Withdrawal"
    SUSPENDED = "Suspended"


def generate_user_code() -> str:
    """외부 노출용 짧은 사용자 코드 (예: 'A1B2C3D4E5')"""
    return secrets.token_hex(5).upper()


class User(TimestampMixin, Base):
    """
    사용자 모델

    - id: UUID v4 (생성 시 부여, 변경 불가)
    - email: 제공자가 다르면 같은 이메일이 여러 행에 존재할 수 있음
      → (email, provider) 유니크 제약이 동시 가입 경쟁의 최종 판정자
    - hashed_password: Local 제공자만 가짐, 외부로 절대 노출 금지
    - refresh_token_hash: 마지막으로 발급한 리프레시 토큰의 해시 (평문은 저장하지 않음)
    - refresh_expires_at: 이 시각이 지나면 토큰 자체의 exp와 무관하게 무효
    - 물리 삭제하지 않음 - 탈퇴는 user_status로 표현
    """
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", "provider", name="uq_users_email_provider"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    email: Mapped[str] = mapped_column(
        String(255),
        index=True,          # 로그인 시 빈번하게 조회
        nullable=False,
    )

    provider: Mapped[Provider] = mapped_column(
        Enum(Provider, name="provider", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Provider.LOCAL,
    )

    user_code: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
        default=generate_user_code,
    )

    # bcrypt 해시 (60자), 소셜 유저는 NULL
    hashed_password: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # 세션 상태
    refresh_token_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    refresh_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # 약관 동의
    essential_agree: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    customized_service_agree: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    marketing_agree: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # 본인 인증 정보 - 재인증(recertify) 시 갱신
    name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    birth: Mapped[str | None] = mapped_column(String(10), nullable=True)

    # 푸시 알림 토큰
    fcm: Mapped[str | None] = mapped_column(String(255), nullable=True)

    paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # 제재 상태 - 이 코어 밖(신고/관리자 기능)에서 변경됨
    report_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    sanction_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    sanction_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    user_status: Mapped[UserStatus] = mapped_column(
        Enum(UserStatus, name="user_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserStatus.ACTIVE,
    )

    # 1:1 프로필 - 유저 조회 시 항상 함께 로딩 (async에서 lazy load 불가)
    profile: Mapped[Profile | None] = relationship(
        back_populates="user",
        lazy="selectin",
        uselist=False,
        cascade="all, delete-orphan",
    )

