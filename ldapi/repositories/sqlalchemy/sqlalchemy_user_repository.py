from typing import Optional
from sqlalchemy.orm import Session
from ldapi.database import models
from ldapi.repositories.interfaces import IUserRepository

class SqlalchemyUserRepository(IUserRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def find_by_login(self, login: str) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.login == login).first()
