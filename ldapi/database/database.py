from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from ldapi.config import settings


def _make_engine(url: str):
    # connect_args는 SQLite에서만 필요합니다. (thread-safe 설정)
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, echo=settings.sql_echo)


# 데이터 파티션별 엔진. ?private=true 요청은 private 엔진을 사용합니다.
engine = _make_engine(settings.database_url)
private_engine = _make_engine(settings.private_database_url)

# autocommit=False, autoflush=False로 설정하여, 명시적으로 commit을 호출해야 DB에 반영됩니다.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
PrivateSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=private_engine)

# 모든 모델 클래스가 상속받을 Base 클래스
Base = declarative_base()


def get_session_factory(private: bool = False):
    """요청의 파티션(public/private)에 맞는 세션 팩토리를 반환합니다."""
    return PrivateSessionLocal if private else SessionLocal
