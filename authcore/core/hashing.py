import base64
import hashlib

import bcrypt


class PasswordHasher:
    """
    bcrypt 기반 단방향 해시 - 로그인 비밀번호와 리프레시 토큰 값 모두에 사용

    bcrypt는 72바이트 초과 입력을 받지 않는다 (4.x 이후 버전은 ValueError).
    JWT 리프레시 토큰은 항상 72바이트를 넘고 앞부분(header + sub)이 사용자마다 같으므로,
    먼저 sha256 → base64(44바이트)로 줄인 뒤 bcrypt에 넣는다.
    """

    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    @staticmethod
    def _prehash(secret: str) -> bytes:
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        return base64.b64encode(digest)

    def hash(self, secret: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(self._prehash(secret), salt).decode("utf-8")

    def verify(self, secret: str, hashed: str) -> bool:
        """평문과 저장된 해시 비교 - 해시 형식이 깨져 있으면 False"""
        try:
            return bcrypt.checkpw(self._prehash(secret), hashed.encode("utf-8"))
        except ValueError:
            return False
