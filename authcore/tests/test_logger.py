"""
JSON 로그 포매터 테스트
"""
import json
import logging
import uuid

import pytest
from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError

from core.hashing import PasswordHasher
from core.logger import JsonFormatter, generate_request_id, get_logger, request_id_var
from models.users import Provider, User


def _record(message: str, **extra_data) -> logging.LogRecord:
    record = logging.LogRecord("auth", logging.INFO, __file__, 1, message, None, None)
    if extra_data:
        record.extra_data = extra_data
    return record


def test_JSON_한줄_출력():
    data = json.loads(JsonFormatter().format(_record("login succeeded", user_id="u-1")))
    assert data["message"] == "login succeeded"
    assert data["level"] == "INFO"
    assert data["logger"] == "auth"
    assert data["user_id"] == "u-1"


def test_request_id_전파():
    token = request_id_var.set("abc12345")
    try:
        data = json.loads(JsonFormatter().format(_record("x")))
    finally:
        request_id_var.reset(token)
    assert data["request_id"] == "abc12345"


def test_민감정보_가림():
    data = json.loads(JsonFormatter().format(
        _record("x", password="pw123", refresh_token="eyJ...", reason="wrong_password")
    ))
    assert data["password"] == "***"
    assert data["refresh_token"] == "***"
    assert data["reason"] == "wrong_password"


def test_request_id_8자():
    assert len(generate_request_id()) == 8


def test_하위_로거는_한번만_출력(capsys):
    # 테스트마다 새 이름 - 핸들러가 capsys의 stderr에 붙도록
    parent = f"authtest{uuid.uuid4().hex[:6]}"
    get_logger(parent)
    child = get_logger(f"{parent}.token")

    child.info("token rejected")

    err = capsys.readouterr().err
    assert err.count("token rejected") == 1
    assert child.propagate is False


@pytest.mark.asyncio
async def test_DB_에러_로그에_해시_미포함(session_factory, unique_email):
    hashed = PasswordHasher(rounds=4).hash("pw123")
    values = {"id": "dup-id", "email": unique_email, "provider": Provider.LOCAL, "hashed_password": hashed}

    async with session_factory() as db, db.begin():
        await db.execute(insert(User).values(**values))

    with pytest.raises(IntegrityError) as exc_info:
        async with session_factory() as db, db.begin():
            await db.execute(insert(User).values(**values))

    assert hashed not in str(exc_info.value)

    # logger.exception()이 남기는 exception 필드도 마찬가지
    err = exc_info.value
    record = logging.LogRecord("auth", logging.ERROR, __file__, 1, "registration failed", None,
                               (type(err), err, err.__traceback__))
    data = json.loads(JsonFormatter().format(record))
    assert "IntegrityError" in data["exception"]
    assert "$2b$" not in data["exception"]
