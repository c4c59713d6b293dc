from abc import ABC, abstractmethod
from typing import Optional
from ldapi.database import models

class IProjectRepository(ABC):
    @abstractmethod
    def find_by_identifier(self, identifier: str) -> Optional[models.Project]:
        """프로젝트 코드로 특정 프로젝트를 조회합니다. 보관된 프로젝트도 반환합니다."""
        pass

    @abstractmethod
    def lock(self, project: models.Project) -> None:
        """
        현재 트랜잭션이 끝날 때까지 프로젝트 행에 쓰기 잠금을 겁니다.

        같은 프로젝트에 대한 멤버십 검사-삭제 시퀀스를 직렬화하기 위해 사용합니다.
        잠금은 멤버십 리포지토리의 commit 또는 rollback 시 해제됩니다.
        """
        pass
