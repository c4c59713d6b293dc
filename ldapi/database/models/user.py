from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import relationship
from ..database import Base


class User(Base):
    """
    시스템에 로그인할 수 있는 사용자를 나타냅니다.
    사용자는 여러 프로젝트에 각각 하나의 역할(Role)로 소속될 수 있습니다.
    admin 플래그가 True인 사용자는 다른 사용자를 대신하여 멤버십을 변경할 수 있습니다.
    """
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    login = Column(String, unique=True, nullable=False, index=True)
    firstname = Column(String, nullable=False, default="")
    lastname = Column(String, nullable=False, default="")
    mail = Column(String, nullable=False, default="")
    admin = Column(Boolean, nullable=False, default=False)
    hashed_password = Column(String(40), nullable=False, default="")
    salt = Column(String(64), nullable=False, default="")

    memberships = relationship("Member", back_populates="user", cascade="all, delete-orphan")
