from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.orm import relationship
from ..database import Base

STATUS_ACTIVE = 1
STATUS_ARCHIVED = 9


class Project(Base):
    """
    Language Depot의 프로젝트를 나타냅니다.
    identifier(프로젝트 코드)는 소문자/숫자/하이픈/밑줄로만 구성되며 생성 후 변경되지 않습니다.
    프로젝트는 삭제되지 않고 status를 STATUS_ARCHIVED로 바꿔 보관(archive) 처리됩니다.
    """
    __tablename__ = "projects"
    id = Column(Integer, primary_key=True, index=True)
    identifier = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String, nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    status = Column(Integer, nullable=False, default=STATUS_ACTIVE)

    memberships = relationship("Member", back_populates="project", cascade="all, delete-orphan")

    @property
    def is_archived(self) -> bool:
        return self.status == STATUS_ARCHIVED
