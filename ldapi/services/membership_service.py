import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from ldapi.database import models
from ldapi.repositories.interfaces import IMembershipRepository, IProjectRepository, IUserRepository
from ldapi.services import roles
from ldapi.services.authorization import AuthorizationGate
from ldapi.services.exceptions import (
    MembershipNotFoundError, MissingParameterError, ProjectNotFoundError, UserNotFoundError
)
from ldapi.services.invariants import ChangeRole, RemoveMembership, would_violate_last_manager
from ldapi.services.roles import ProjectRole
from ldapi.utils.validators import is_valid_project_code

logger = logging.getLogger(__name__)

LAST_MANAGER = "last_manager"


@dataclass(frozen=True)
class MembershipRecord:
    project: str
    login: str
    role: ProjectRole

    def to_dict(self) -> Dict[str, Any]:
        return {"project": self.project, "user": self.login, "role": self.role.name}


@dataclass(frozen=True)
class RequiresConfirmation:
    """
    변경을 수행하면 프로젝트에 Manager가 남지 않는다는 신호입니다.
    오류가 아니라, confirmed 플래그와 함께 다시 요청하라는 구조화된 응답입니다.
    """
    project: str
    login: str
    role: ProjectRole
    reason: str = LAST_MANAGER

    def to_payload(self) -> Dict[str, Any]:
        return {
            "status": "confirmation_required",
            "project": self.project,
            "user": self.login,
            "role": self.role.name,
            "reason": self.reason,
        }


MutationResult = Union[MembershipRecord, RequiresConfirmation]


class MembershipService:
    """프로젝트 멤버십의 추가/삭제와 조회를 담당합니다. 멤버십 쓰기는 이 서비스만 수행합니다."""

    def __init__(self, project_repo: IProjectRepository, user_repo: IUserRepository,
                 membership_repo: IMembershipRepository, gate: AuthorizationGate):
        """
        MembershipService를 초기화합니다.

        Args:
            project_repo: 프로젝트 조회 및 프로젝트 단위 잠금을 위한 리포지토리.
            user_repo: 사용자 조회를 위한 리포지토리.
            membership_repo: 멤버십 행을 읽고 쓰는 유일한 리포지토리.
            gate: 모든 변경 요청 앞단의 권한 검사기.
        """
        self.project_repo = project_repo
        self.user_repo = user_repo
        self.membership_repo = membership_repo
        self.gate = gate

    def add_member(self, authorization: Optional[str], project_code: str, login: str,
                   role_spec: Any = None, confirmed: bool = False) -> MutationResult:
        """
        사용자를 프로젝트에 추가하거나 역할을 교체합니다.

        같은 역할로 다시 추가하면 아무 것도 바꾸지 않고 기존 멤버십을 반환합니다.
        유일한 Manager의 역할을 낮추는 경우 confirmed가 아니면 RequiresConfirmation을 반환합니다.

        Args:
            authorization: 요청의 Authorization 헤더 값.
            project_code: 대상 프로젝트 코드.
            login: 추가할 사용자의 로그인 이름.
            role_spec: 역할 지정자 (이름, ID, 또는 딕셔너리). 없으면 Contributor.
            confirmed: 마지막 Manager 강등을 알고도 진행할지 여부.

        Returns:
            MembershipRecord 또는 RequiresConfirmation.

        Raises:
            UnauthorizedError, ForbiddenError: 권한 검사에 실패했을 때.
            InvalidRoleError: 역할 지정자를 해석할 수 없을 때.
            ProjectNotFoundError, UserNotFoundError: 프로젝트나 사용자가 없을 때.
            StorageError: 쓰기에 실패했을 때.
        """
        self._require_params(project_code, login)
        self.gate.require(authorization, login)
        role = roles.resolve_role(role_spec)
        project, user = self._find_project_and_user(project_code, login)

        self.project_repo.lock(project)
        snapshot = self._snapshot(project)
        current = dict(snapshot).get(user.login)

        if current == role:
            self.membership_repo.rollback()
            return MembershipRecord(project.identifier, user.login, role)

        if current is not None and not confirmed and would_violate_last_manager(snapshot, ChangeRole(user.login, current, role)):
            self.membership_repo.rollback()
            logger.info("Downgrade of last manager '%s' in '%s' requires confirmation", user.login, project.identifier)
            return RequiresConfirmation(project.identifier, user.login, current)

        self.membership_repo.add_member(project, user, role.id)
        logger.info("Set role of '%s' in '%s' to %s (was %s)", user.login, project.identifier, role.name,
                    current.name if current else "none")
        return MembershipRecord(project.identifier, user.login, role)

    def remove_member(self, authorization: Optional[str], project_code: str, login: str,
                      role_spec: Any = None, confirmed: bool = False) -> MutationResult:
        """
        사용자를 프로젝트에서 제거합니다.

        제거하면 Manager가 0명이 되는 경우 confirmed가 아니면 삭제하지 않고
        RequiresConfirmation을 반환합니다. confirmed이면 그대로 삭제합니다.
        검사와 삭제는 프로젝트 잠금을 잡은 하나의 트랜잭션 안에서 수행됩니다.

        Args:
            authorization: 요청의 Authorization 헤더 값.
            project_code: 대상 프로젝트 코드.
            login: 제거할 사용자의 로그인 이름.
            role_spec: 지정하면 현재 역할과 일치할 때만 제거합니다.
            confirmed: 마지막 Manager 제거를 알고도 진행할지 여부.

        Returns:
            제거된 MembershipRecord 또는 RequiresConfirmation.

        Raises:
            UnauthorizedError, ForbiddenError: 권한 검사에 실패했을 때.
            InvalidRoleError: 역할 지정자를 해석할 수 없을 때.
            ProjectNotFoundError, UserNotFoundError, MembershipNotFoundError: 대상이 없을 때.
            StorageError: 삭제에 실패했을 때.
        """
        self._require_params(project_code, login)
        self.gate.require(authorization, login)
        expected_role = roles.resolve_role(role_spec) if roles.is_role_specified(role_spec) else None
        project, user = self._find_project_and_user(project_code, login)

        self.project_repo.lock(project)
        member = self.membership_repo.find_member(project, user)
        if member is None or (expected_role is not None and member.role_id != expected_role.id):
            self.membership_repo.rollback()
            raise MembershipNotFoundError(f"User '{login}' is not a member of project '{project_code}'"
                                          + (f" with role '{expected_role.name}'." if expected_role else "."))

        current = roles.role_by_id(member.role_id)
        if would_violate_last_manager(self._snapshot(project), RemoveMembership(user.login, current)):
            if not confirmed:
                self.membership_repo.rollback()
                logger.info("Removal of last manager '%s' from '%s' requires confirmation", user.login, project.identifier)
                return RequiresConfirmation(project.identifier, user.login, current)
            logger.warning("Removing last manager '%s' from '%s' (confirmed)", user.login, project.identifier)

        self.membership_repo.remove_member(member)
        logger.info("Removed '%s' (%s) from '%s'", user.login, current.name, project.identifier)
        return MembershipRecord(project.identifier, user.login, current)

    def get_member(self, project_code: str, login: str) -> Dict[str, Any]:
        """
        프로젝트 내 사용자의 역할을 조회합니다.

        Raises:
            ProjectNotFoundError, UserNotFoundError, MembershipNotFoundError: 대상이 없을 때.
        """
        self._require_params(project_code, login)
        project, user = self._find_project_and_user(project_code, login)
        member = self.membership_repo.find_member(project, user)
        if member is None:
            raise MembershipNotFoundError(f"User '{login}' is not a member of project '{project_code}'.")
        role = roles.role_by_id(member.role_id)
        return {"user": self._user_to_dict(user), "role": role.name}

    def list_members(self, project_code: str) -> List[Dict[str, Any]]:
        """프로젝트의 멤버와 역할 목록을 조회합니다."""
        project = self._find_project(project_code)
        return [{"user": login, "role": role.name} for login, role in self._snapshot(project)]

    def projects_for_user(self, authorization: Optional[str], login: str) -> List[Tuple[str, str]]:
        """
        사용자가 속한 프로젝트 코드와 역할 이름 목록을 조회합니다.
        이 엔드포인트만 Basic 자격 증명 폴백을 허용합니다.

        Raises:
            UnauthorizedError, ForbiddenError: 권한 검사에 실패했을 때.
            UserNotFoundError: 사용자가 없을 때.
        """
        self.gate.require(authorization, login, allow_basic_auth=True)
        user = self.user_repo.find_by_login(login)
        if not user:
            raise UserNotFoundError(f"User '{login}' not found.")
        return [(m.project.identifier, roles.role_by_id(m.role_id).name)
                for m in self.membership_repo.list_for_user(user)]

    def list_roles(self) -> List[Tuple[int, str]]:
        """모든 역할의 (id, name) 목록을 반환합니다."""
        return roles.all_roles()

    def _snapshot(self, project: models.Project) -> List[Tuple[str, ProjectRole]]:
        return [(m.user.login, roles.role_by_id(m.role_id)) for m in self.membership_repo.list_members(project)]

    def _find_project(self, project_code: str) -> models.Project:
        # 형식이 틀린 코드는 존재할 수 없으므로 저장소를 조회하지 않습니다.
        if not project_code or not is_valid_project_code(project_code):
            raise ProjectNotFoundError(f"Project code '{project_code}' not found.")
        project = self.project_repo.find_by_identifier(project_code)
        if not project or project.is_archived:
            raise ProjectNotFoundError(f"Project code '{project_code}' not found.")
        return project

    def _find_project_and_user(self, project_code: str, login: str) -> Tuple[models.Project, models.User]:
        project = self._find_project(project_code)
        user = self.user_repo.find_by_login(login)
        if not user:
            raise UserNotFoundError(f"User '{login}' not found.")
        return project, user

    @staticmethod
    def _require_params(project_code: str, login: str):
        if not project_code:
            raise MissingParameterError("Missing required parameter 'projectCode'.")
        if not login:
            raise MissingParameterError("Missing required parameter 'username'.")

    @staticmethod
    def _user_to_dict(user: models.User) -> Dict[str, Any]:
        return {
            "login": user.login,
            "firstname": user.firstname,
            "lastname": user.lastname,
            "mail": user.mail,
            "admin": bool(user.admin),
        }
