from abc import ABC, abstractmethod
from typing import List, Optional
from ldapi.database import models

class IMembershipRepository(ABC):
    """
    멤버십 행에 접근하는 유일한 경로입니다.
    add_member / remove_member 외의 코드는 members 테이블에 쓰지 않습니다.
    """

    @abstractmethod
    def list_members(self, project: models.Project) -> List[models.Member]:
        """
        특정 프로젝트의 모든 멤버십을 user, role 관계와 함께 조회합니다.

        Returns:
            Member 모델의 리스트. (예: [Member(user=alice, role=Manager), ...])
        """
        pass

    @abstractmethod
    def find_member(self, project: models.Project, user: models.User) -> Optional[models.Member]:
        """(project, user) 쌍의 멤버십을 조회합니다. 없으면 None."""
        pass

    @abstractmethod
    def list_for_user(self, user: models.User) -> List[models.Member]:
        """사용자가 속한 보관되지 않은 프로젝트의 멤버십 목록을 조회합니다."""
        pass

    @abstractmethod
    def add_member(self, project: models.Project, user: models.User, role_id: int) -> models.Member:
        """
        멤버십을 추가하거나, 이미 있으면 역할을 교체(upsert)하고 커밋합니다.

        Raises:
            StorageError: 커밋에 실패했을 때. 트랜잭션은 롤백됩니다.
        """
        pass

    @abstractmethod
    def remove_member(self, member: models.Member) -> None:
        """
        멤버십 행을 삭제하고 커밋합니다.

        Raises:
            StorageError: 커밋에 실패했을 때. 트랜잭션은 롤백됩니다.
        """
        pass

    @abstractmethod
    def rollback(self) -> None:
        """현재 트랜잭션을 롤백하여 잡고 있던 잠금을 해제합니다."""
        pass
