from abc import ABC, abstractmethod
from typing import Optional
from ldapi.database import models

class IUserRepository(ABC):
    @abstractmethod
    def find_by_login(self, login: str) -> Optional[models.User]:
        """로그인 이름으로 특정 사용자를 조회합니다."""
        pass
