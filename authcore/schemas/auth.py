from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from models.users import Provider, UserStatus


class AgreementFlags(BaseModel):
    """회원가입 시 약관 동의 항목"""
    essential_agree: bool = True
    customized_service_agree: bool = False
    marketing_agree: bool = False


class RecertificationPatch(BaseModel):
    """본인 재인증 후 갱신할 항목 - 보낸 필드만 반영 (exclude_unset)"""
    name: str | None = Field(default=None, max_length=50)
    phone: str | None = Field(default=None, max_length=20)
    birth: str | None = Field(default=None, max_length=10)

    model_config = ConfigDict(extra="forbid")


class ProfileInfo(BaseModel):
    nickname: str
    career: int

    model_config = ConfigDict(from_attributes=True)


class UserInfo(BaseModel):
    """로그인 응답에 담기는 사용자 정보 (비밀번호 / 리프레시 토큰 해시 제외!)"""
    id: str
    email: str
    provider: Provider
    user_code: str
    name: str | None = None
    phone: str | None = None
    birth: str | None = None
    essential_agree: bool
    customized_service_agree: bool
    marketing_agree: bool
    report_count: int
    sanction_count: int
    user_status: UserStatus
    paid: bool
    fcm: str | None = None
    profile: ProfileInfo | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)  # SQLAlchemy 모델 → Pydantic 자동 변환


class SessionResult(BaseModel):
    """로그인 / 토큰 갱신 성공 시 돌려줄 토큰 쌍

    refresh_token 평문은 여기서 한 번만 전달되고, 서버에는 해시만 남는다.
    """
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user_info: UserInfo | None = None


class RegistrationResult(BaseModel):
    message: str = "success"
    user_id: str
