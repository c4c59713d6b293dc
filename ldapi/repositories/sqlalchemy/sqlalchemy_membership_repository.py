import logging
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload
from ldapi.database import models
from ldapi.repositories.interfaces import IMembershipRepository
from ldapi.services.exceptions import StorageError

logger = logging.getLogger(__name__)


class SqlalchemyMembershipRepository(IMembershipRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def list_members(self, project: models.Project) -> List[models.Member]:
        return (
            self.db.query(models.Member)
            .options(joinedload(models.Member.user), joinedload(models.Member.role))
            .filter(models.Member.project_id == project.id)
            .order_by(models.Member.id.asc())
            .all()
        )

    def find_member(self, project: models.Project, user: models.User) -> Optional[models.Member]:
        return self.db.query(models.Member).filter(
            models.Member.project_id == project.id,
            models.Member.user_id == user.id
        ).first()

    def list_for_user(self, user: models.User) -> List[models.Member]:
        return (
            self.db.query(models.Member)
            .join(models.Project)
            .options(joinedload(models.Member.project), joinedload(models.Member.role))
            .filter(models.Member.user_id == user.id, models.Project.status != models.STATUS_ARCHIVED)
            .order_by(models.Project.identifier.asc())
            .all()
        )

    def add_member(self, project: models.Project, user: models.User, role_id: int) -> models.Member:
        member = self.find_member(project, user)
        if member is None:
            member = models.Member(project_id=project.id, user_id=user.id, role_id=role_id)
            self.db.add(member)
        else:
            member.role_id = role_id
        self._commit()
        self.db.refresh(member)
        return member

    def remove_member(self, member: models.Member) -> None:
        self.db.delete(member)
        self._commit()

    def rollback(self) -> None:
        self.db.rollback()

    def _commit(self):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Membership write failed; transaction rolled back")
            raise StorageError(f"Failed to write membership: {e}") from e
