from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from core.config import Settings


# 1. Async 엔진 생성
#    - echo: 실행되는 SQL 출력 여부 (DB_ECHO, 개발용)
#    - hide_parameters: 에러 메시지와 SQL 로그에 바인딩 값(비밀번호 해시, 토큰 해시) 미포함
#    - pool_size / max_overflow: 커넥션 풀 크기 (PostgreSQL 등 서버형 DB만)
def create_engine(settings: Settings, **kwargs) -> AsyncEngine:
    is_sqlite = settings.database_url.startswith("sqlite")
    options = {"echo": settings.db_echo, "hide_parameters": True}
    if not is_sqlite:
        options.update(pool_size=5, max_overflow=10, pool_pre_ping=True)
    options.update(kwargs)

    engine = create_async_engine(settings.database_url, **options)
    if is_sqlite:
        _enable_sqlite_savepoints(engine)
    return engine


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """aiosqlite 드라이버가 BEGIN을 늦게 보내서 SAVEPOINT가 깨지는 문제 우회

    드라이버의 자동 BEGIN을 끄고 트랜잭션 시작 시 직접 BEGIN IMMEDIATE를 보낸다.
    IMMEDIATE: 시작하자마자 쓰기 락을 잡아서 동시 트랜잭션이 줄을 서게 함
    (지연 BEGIN이면 두 트랜잭션이 읽기 락을 쥔 채 서로 쓰기를 기다리다 "database is locked")
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


# 2. 세션 팩토리
#    - expire_on_commit=False: commit 후에도 객체 속성에 접근 가능
#      (True면 commit 후 속성 접근 시 LazyLoad → async에서 에러 발생)
def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# 3. Base 클래스 - 모든 모델이 상속받는 부모
#    여기서 선언하면 순환 import 방지 가능
class Base(DeclarativeBase):
    pass
