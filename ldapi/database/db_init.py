import logging

from .database import engine, private_engine, SessionLocal, PrivateSessionLocal, Base
from .models import Role
from ldapi.services import roles

logger = logging.getLogger(__name__)


def seed_roles(db):
    """고정 역할 테이블을 roles 테이블에 반영합니다. 이미 있는 행은 이름과 순서만 맞춥니다."""
    for position, (role_id, name) in enumerate(roles.all_roles(), start=1):
        existing = db.get(Role, role_id)
        if existing:
            existing.name, existing.position = name, position
        else:
            db.add(Role(id=role_id, name=name, position=position))
    db.commit()


def initialize_db():
    """
    두 파티션(public/private)의 테이블을 생성하고, 역할 테이블을 시드합니다.
    """
    for bind, session_factory in ((engine, SessionLocal), (private_engine, PrivateSessionLocal)):
        # 모든 테이블을 생성합니다. (이미 존재하면 생성하지 않음)
        Base.metadata.create_all(bind=bind)
        db = session_factory()
        try:
            seed_roles(db)
            logger.info("Initialized database %s", bind.url)
        except Exception:
            db.rollback()
            logger.exception("Failed to initialize database %s", bind.url)
            raise
        finally:
            db.close()


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    initialize_db()
