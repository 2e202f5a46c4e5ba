"""
인증 코어 에러 분류

- NotFound:     EmailNotFound, UserNotFound
- AuthFailure:  WrongPassword, InvalidOrExpiredToken, RefreshTokenNotFound, RefreshTokenMismatch
- Conflict:     DuplicateEmail
- Internal:     InternalError (+ 흐름 단위로 뭉뚱그린 SocialLoginFailed, RecertificationFailed)

HTTP 계층은 code / status_code 만 보고 응답을 만들면 된다.
InternalError 계열의 메시지는 항상 고정 문구 - 원인 예외는 __cause__ 와 로그에만 남는다.
"""


class AuthError(Exception):
    """인증 코어가 호출자에게 돌려주는 모든 실패의 부모"""

    code: str = "AUTH-000"
    status_code: int = 500
    message: str = "인증 처리 중 오류가 발생했습니다."

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
        }


# ===== NotFound =====

class NotFoundError(AuthError):
    status_code = 404


class EmailNotFound(NotFoundError):
    code = "USER-E001"
    message = "존재하지 않는 이메일입니다."


class UserNotFound(NotFoundError):
    code = "USER-E002"
    message = "해당하는 사용자를 찾을 수 없습니다."


# ===== AuthFailure =====

class AuthFailure(AuthError):
    status_code = 401


class WrongPassword(AuthFailure):
    code = "USER-E003"
    message = "비밀번호가 일치하지 않습니다."


class InvalidOrExpiredToken(AuthFailure):
    code = "AUTH-E001"
    message = "유효하지 않거나 만료된 토큰입니다."


class RefreshTokenNotFound(AuthFailure):
    code = "USER-E004"
    message = "리프레시 토큰이 존재하지 않습니다."


class RefreshTokenMismatch(AuthFailure):
    code = "USER-E005"
    message = "리프레시 토큰이 일치하지 않습니다."


# ===== Conflict =====

class DuplicateEmail(AuthError):
    code = "USER-E006"
    status_code = 409
    message = "중복된 이메일입니다."


# ===== Internal =====

class InternalError(AuthError):
    code = "COMMON-E500"
    status_code = 500
    message = "서버 내부 오류가 발생했습니다."


class SocialLoginFailed(InternalError):
    code = "AUTH-E002"
    message = "소셜 로그인에 실패했습니다."


class RecertificationFailed(InternalError):
    code = "AUTH-E003"
    message = "본인 재인증 정보 수정에 실패했습니다."


class UpdateFailed(InternalError):
    code = "USER-E007"
    message = "사용자 정보 수정에 실패했습니다."
