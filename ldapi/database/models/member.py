from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from ..database import Base


class Member(Base):
    """
    사용자(User)와 프로젝트(Project)를 하나의 역할(Role)로 연결하는 멤버십 모델입니다.
    (project_id, user_id) 쌍마다 최대 하나의 행만 존재하며, 역할 변경은 행을 추가하지 않고 role_id를 교체합니다.
    """
    __tablename__ = "members"
    __table_args__ = (UniqueConstraint("project_id", "user_id", name="uq_members_project_user"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False)

    user = relationship("User", back_populates="memberships")
    project = relationship("Project", back_populates="memberships")
    role = relationship("Role")
