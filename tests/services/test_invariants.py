# tests/services/test_invariants.py
from ldapi.services.invariants import ChangeRole, RemoveMembership, would_violate_last_manager
from ldapi.services.roles import CONTRIBUTOR, MANAGER, OBSERVER


class TestWouldViolateLastManager:
    def test_removing_sole_manager_violates(self):
        members = [("alice", MANAGER), ("bob", CONTRIBUTOR)]
        assert would_violate_last_manager(members, RemoveMembership("alice", MANAGER)) is True

    def test_removing_one_of_two_managers_is_allowed(self):
        members = [("alice", MANAGER), ("carol", MANAGER)]
        assert would_violate_last_manager(members, RemoveMembership("alice", MANAGER)) is False

    def test_removing_non_manager_never_violates(self):
        members = [("alice", MANAGER), ("bob", CONTRIBUTOR)]
        assert would_violate_last_manager(members, RemoveMembership("bob", CONTRIBUTOR)) is False

    def test_project_without_managers_is_not_repaired(self):
        """매니저가 이미 없는 프로젝트에서 비매니저를 제거해도 위반으로 보지 않습니다."""
        members = [("bob", CONTRIBUTOR), ("dave", OBSERVER)]
        assert would_violate_last_manager(members, RemoveMembership("bob", CONTRIBUTOR)) is False

    def test_unknown_user_never_violates(self):
        assert would_violate_last_manager([("alice", MANAGER)], RemoveMembership("zoe", MANAGER)) is False

    def test_downgrading_sole_manager_violates(self):
        members = [("alice", MANAGER), ("bob", CONTRIBUTOR)]
        assert would_violate_last_manager(members, ChangeRole("alice", MANAGER, OBSERVER)) is True

    def test_promoting_never_violates(self):
        members = [("alice", MANAGER), ("bob", CONTRIBUTOR)]
        assert would_violate_last_manager(members, ChangeRole("bob", CONTRIBUTOR, MANAGER)) is False

    def test_manager_to_manager_change_does_not_violate(self):
        assert would_violate_last_manager([("alice", MANAGER)], ChangeRole("alice", MANAGER, MANAGER)) is False

    def test_accepts_any_iterable_snapshot(self):
        snapshot = iter([("alice", MANAGER)])
        assert would_violate_last_manager(snapshot, RemoveMembership("alice", MANAGER)) is True
