# tests/repositories/test_sqlalchemy_project_repository.py
import threading
from unittest.mock import MagicMock

import pytest
from sqlalchemy.orm import sessionmaker

from ldapi.database import models
from ldapi.database.database import Base, _make_engine
from ldapi.database.db_init import seed_roles
from ldapi.repositories.sqlalchemy.sqlalchemy_membership_repository import SqlalchemyMembershipRepository
from ldapi.repositories.sqlalchemy.sqlalchemy_project_repository import SqlalchemyProjectRepository
from ldapi.repositories.sqlalchemy.sqlalchemy_user_repository import SqlalchemyUserRepository
from ldapi.services import roles
from ldapi.services.authorization import AuthorizationGate
from ldapi.services.membership_service import MembershipRecord, MembershipService, RequiresConfirmation

AUTH = "Bearer token"

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def file_sessions(tmp_path):
    """
    파일 기반 SQLite DB의 세션 팩토리. 세션마다 별도의 연결을 사용하므로 실제 잠금 경합이 일어납니다.
    my-proj에는 alice, bob 두 명의 Manager가 있습니다.
    """
    engine = _make_engine(f"sqlite:///{tmp_path / 'ldapi.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = factory()
    seed_roles(db)
    project = models.Project(identifier="my-proj", name="My Project")
    alice, bob = models.User(login="alice"), models.User(login="bob")
    db.add_all([project, alice, bob])
    db.commit()
    db.add_all([models.Member(project_id=project.id, user_id=u.id, role_id=roles.MANAGER.id) for u in (alice, bob)])
    db.commit()
    db.close()

    yield factory
    engine.dispose()


class SnapshotHookMembershipRepository(SqlalchemyMembershipRepository):
    """멤버십 스냅샷을 읽은 직후 after_snapshot 콜백을 한 번 실행합니다."""

    def __init__(self, db_session, after_snapshot):
        super().__init__(db_session)
        self.after_snapshot = after_snapshot

    def list_members(self, project):
        members = super().list_members(project)
        callback, self.after_snapshot = self.after_snapshot, None
        if callback:
            callback()
        return members


def make_service(db, membership_repo=None) -> MembershipService:
    gate = MagicMock(spec=AuthorizationGate)
    return MembershipService(SqlalchemyProjectRepository(db), SqlalchemyUserRepository(db),
                             membership_repo or SqlalchemyMembershipRepository(db), gate)

# ===================================================================
#  프로젝트 잠금 테스트
# ===================================================================
class TestProjectLock:
    def test_concurrent_manager_removals_are_serialized(self, file_sessions):
        """
        A가 스냅샷(Manager 2명)을 읽은 뒤 B가 다른 Manager를 제거하려 하면,
        B는 A가 커밋할 때까지 대기하고 갱신된 스냅샷에서 확인 요청을 받아야 합니다.
        """
        # === Arrange ===
        results = {}

        def request_b():
            db_b = file_sessions()
            try:
                results["bob"] = make_service(db_b).remove_member(AUTH, "my-proj", "bob")
            finally:
                db_b.close()

        thread_b = threading.Thread(target=request_b)

        def start_b_while_a_holds_lock():
            thread_b.start()
            thread_b.join(timeout=0.5)
            results["b_blocked"] = thread_b.is_alive()

        db_a = file_sessions()
        service_a = make_service(db_a, SnapshotHookMembershipRepository(db_a, start_b_while_a_holds_lock))

        # === Act ===
        try:
            results["alice"] = service_a.remove_member(AUTH, "my-proj", "alice")
        finally:
            db_a.close()
        thread_b.join(timeout=10)

        # === Assert ===
        assert results["b_blocked"] is True
        assert isinstance(results["alice"], MembershipRecord)
        assert isinstance(results["bob"], RequiresConfirmation)

        db = file_sessions()
        managers = db.query(models.Member).filter_by(role_id=roles.MANAGER.id).count()
        db.close()
        assert managers == 1

    def test_lock_is_released_on_rollback(self, file_sessions):
        db_a, db_b = file_sessions(), file_sessions()
        project_a = SqlalchemyProjectRepository(db_a).find_by_identifier("my-proj")
        SqlalchemyProjectRepository(db_a).lock(project_a)
        SqlalchemyMembershipRepository(db_a).rollback()

        # A가 롤백했으므로 B는 대기 없이 잠금을 잡을 수 있어야 함
        project_b = SqlalchemyProjectRepository(db_b).find_by_identifier("my-proj")
        SqlalchemyProjectRepository(db_b).lock(project_b)
        db_b.rollback()

        db_a.close()
        db_b.close()
