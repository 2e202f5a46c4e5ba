from datetime import datetime
from sqlalchemy import DateTime, func
from sqlalchemy.orm import Mapped, mapped_column


class TimestampMixin:
    """
    모든 모델에 공통 적용할 생성/수정 시간

    - server_default=func.now(): DB 서버 시간 기준
    - onupdate=func.now(): UPDATE 쿼리 시 자동 갱신
      (로그인/리프레시마다 리프레시 토큰 컬럼이 바뀌므로 updated_at은 마지막 세션 활동 시각이 됨)
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
