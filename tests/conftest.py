# tests/conftest.py
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ldapi.database import models
from ldapi.database.database import Base
from ldapi.database.db_init import seed_roles

JWT_SECRET = "test-secret"


def make_token(login, expires_in=timedelta(minutes=5), secret=JWT_SECRET, **claims):
    """테스트용 JWT를 발급합니다. expires_in이 음수이면 이미 만료된 토큰입니다."""
    payload = {"sub": login, "exp": datetime.now(timezone.utc) + expires_in, **claims}
    return jwt.encode(payload, secret, algorithm="HS256")


def _bearer(login, **kwargs):
    return f"Bearer {make_token(login, **kwargs)}"


@pytest.fixture
def bearer():
    """로그인 이름으로 'Bearer <jwt>' 헤더 값을 만드는 함수를 반환합니다."""
    return _bearer


def _memory_database():
    """역할이 시드된 인메모리 SQLite DB의 엔진과 세션 팩토리를 만듭니다."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = factory()
    seed_roles(db)
    db.close()
    return engine, factory


@pytest.fixture
def session_factory():
    engine, factory = _memory_database()
    yield factory
    engine.dispose()


@pytest.fixture
def private_session_factory():
    """?private=true 요청용으로 분리된 두 번째 DB."""
    engine, factory = _memory_database()
    yield factory
    engine.dispose()


@pytest.fixture
def seed(session_factory):
    """
    프로젝트, 사용자, 멤버십을 한 번에 만드는 헬퍼를 반환합니다.

    사용 예: seed(projects=["my-proj"], users=["alice", "bob"], admins=["root"],
                  members=[("my-proj", "alice", 3)])
    """
    def _seed(projects=(), users=(), admins=(), members=(), archived=()):
        db = session_factory()
        try:
            for code in projects:
                db.add(models.Project(identifier=code, name=code.title()))
            for code in archived:
                db.add(models.Project(identifier=code, name=code.title(), status=models.STATUS_ARCHIVED))
            for login in users:
                db.add(models.User(login=login))
            for login in admins:
                db.add(models.User(login=login, admin=True))
            db.commit()
            for code, login, role_id in members:
                project = db.query(models.Project).filter_by(identifier=code).one()
                user = db.query(models.User).filter_by(login=login).one()
                db.add(models.Member(project_id=project.id, user_id=user.id, role_id=role_id))
            db.commit()
        finally:
            db.close()
    return _seed
