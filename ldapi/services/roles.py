from dataclasses import dataclass
from typing import Any, List, Mapping, Tuple, Union

from ldapi.services.exceptions import InvalidRoleError


@dataclass(frozen=True)
class ProjectRole:
    id: int
    name: str

    @property
    def is_manager(self) -> bool:
        return self.id == MANAGER.id


MANAGER = ProjectRole(3, "Manager")
CONTRIBUTOR = ProjectRole(4, "Contributor")
OBSERVER = ProjectRole(5, "Observer")
PROGRAMMER = ProjectRole(6, "Programmer")

# 표시 순서대로 정렬된 고정 테이블. 권한 비교에는 사용하지 않습니다.
_ROLES = (MANAGER, CONTRIBUTOR, OBSERVER, PROGRAMMER)
_BY_ID = {role.id: role for role in _ROLES}
_BY_NAME = {role.name.lower(): role for role in _ROLES}

# 역할을 지정하지 않고 멤버를 추가하면 Contributor가 됩니다.
DEFAULT_ROLE = CONTRIBUTOR

# 객체 형태의 역할 지정자에서 확인하는 키 (우선순위 순)
ROLE_SPECIFIER_KEYS = ("role", "roleId", "roleName")


def all_roles() -> List[Tuple[int, str]]:
    """모든 역할을 (id, name) 튜플 목록으로 표시 순서대로 반환합니다."""
    return [(role.id, role.name) for role in _ROLES]


def role_by_id(role_id: int) -> ProjectRole:
    """
    ID로 역할을 조회합니다.

    Raises:
        InvalidRoleError: 해당 ID의 역할이 없을 때.
    """
    role = _BY_ID.get(role_id)
    if role is None:
        raise InvalidRoleError(f"Role id '{role_id}' not found.")
    return role


def role_by_name(name: str) -> ProjectRole:
    """
    이름으로 역할을 조회합니다. 대소문자는 구분하지 않습니다.

    Raises:
        InvalidRoleError: 해당 이름의 역할이 없을 때.
    """
    role = _BY_NAME.get(name.strip().lower()) if isinstance(name, str) else None
    if role is None:
        raise InvalidRoleError(f"Role '{name}' not found.")
    return role


@dataclass(frozen=True)
class Resolved:
    role: ProjectRole


@dataclass(frozen=True)
class Unrecognized:
    raw: Any


RoleSpecifier = Union[Resolved, Unrecognized]


def parse_role_specifier(raw: Any) -> RoleSpecifier:
    """
    요청 본문에서 받은 역할 지정자를 해석합니다.

    문자열(이름 또는 숫자 ID), 정수 ID, 혹은 'role' / 'roleId' / 'roleName' 키를 가진
    딕셔너리를 허용합니다. 값이 없으면 기본 역할(Contributor)로 해석합니다.

    Args:
        raw: JSON에서 디코딩된 원본 값.

    Returns:
        해석에 성공하면 Resolved(role), 실패하면 Unrecognized(raw).
    """
    if raw is None or raw == "":
        return Resolved(DEFAULT_ROLE)

    # bool은 int의 하위 클래스이므로 먼저 걸러냅니다.
    if isinstance(raw, bool):
        return Unrecognized(raw)

    if isinstance(raw, int):
        role = _BY_ID.get(raw)
        return Resolved(role) if role else Unrecognized(raw)

    if isinstance(raw, str):
        text = raw.strip()
        if text.isdigit():
            role = _BY_ID.get(int(text))
        else:
            role = _BY_NAME.get(text.lower())
        return Resolved(role) if role else Unrecognized(raw)

    if isinstance(raw, Mapping):
        for key in ROLE_SPECIFIER_KEYS:
            value = raw.get(key)
            if value not in (None, ""):
                result = parse_role_specifier(value)
                return result if isinstance(result, Resolved) else Unrecognized(raw)
        return Resolved(DEFAULT_ROLE)

    return Unrecognized(raw)


def is_role_specified(raw: Any) -> bool:
    """지정자에 역할 값이 실제로 들어 있는지 확인합니다. 빈 값은 '역할 미지정'입니다."""
    if raw is None or raw == "":
        return False
    if isinstance(raw, Mapping):
        return any(raw.get(key) not in (None, "") for key in ROLE_SPECIFIER_KEYS)
    return True


def resolve_role(raw: Any) -> ProjectRole:
    """
    parse_role_specifier의 결과를 역할로 변환합니다.

    Raises:
        InvalidRoleError: 지정자를 해석할 수 없을 때.
    """
    result = parse_role_specifier(raw)
    if isinstance(result, Unrecognized):
        raise InvalidRoleError(f"Unrecognized role specifier: {result.raw!r}")
    return result.role
