from dataclasses import dataclass
from typing import Iterable, Tuple, Union

from ldapi.services.roles import ProjectRole


@dataclass(frozen=True)
class RemoveMembership:
    login: str
    role: ProjectRole


@dataclass(frozen=True)
class ChangeRole:
    login: str
    old_role: ProjectRole
    new_role: ProjectRole


MembershipAction = Union[RemoveMembership, ChangeRole]


def would_violate_last_manager(members: Iterable[Tuple[str, ProjectRole]], action: MembershipAction) -> bool:
    """
    주어진 멤버십 스냅샷에 action을 적용하면 프로젝트에 Manager가 한 명도 남지 않는지 검사합니다.

    대상 사용자가 현재 Manager가 아니면 즉시 False를 반환합니다.
    이미 Manager가 없는 프로젝트는 복구하지 않습니다.

    Args:
        members: (login, role) 튜플의 목록. 잠금을 건 상태에서 읽은 스냅샷이어야 합니다.
        action: RemoveMembership 또는 ChangeRole.

    Returns:
        Manager가 0명이 되는 경우 True.
    """
    members = list(members)
    current = next((role for login, role in members if login == action.login), None)
    if current is None or not current.is_manager:
        return False

    if isinstance(action, ChangeRole) and action.new_role.is_manager:
        return False

    other_managers = sum(1 for login, role in members if login != action.login and role.is_manager)
    return other_managers == 0
