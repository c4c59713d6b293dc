from sqlalchemy import Column, Integer, String
from ..database import Base


class Role(Base):
    """
    프로젝트 멤버십의 역할 테이블입니다. (예: 'Manager', 'Contributor')
    행은 services.roles의 고정 테이블에서 시드되며, 사용자 입력으로는 절대 쓰이지 않습니다.
    """
    __tablename__ = "roles"
    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String, unique=True, nullable=False)
    position = Column(Integer, nullable=False, default=1)
