from typing import Optional
from sqlalchemy.orm import Session
from ldapi.database import models
from ldapi.repositories.interfaces import IProjectRepository

class SqlalchemyProjectRepository(IProjectRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def find_by_identifier(self, identifier: str) -> Optional[models.Project]:
        return self.db.query(models.Project).filter(models.Project.identifier == identifier).first()

    def lock(self, project: models.Project) -> None:
        query = self.db.query(models.Project).filter(models.Project.id == project.id)
        if self.db.get_bind().dialect.name == "sqlite":
            # SQLite는 FOR UPDATE를 무시하고 SELECT로는 트랜잭션을 열지 않습니다.
            # 값이 바뀌지 않는 UPDATE로 RESERVED 잠금을 잡아 커밋/롤백까지 다른 쓰기 요청을 대기시킵니다.
            query.update({models.Project.status: models.Project.status}, synchronize_session=False)
        else:
            # SELECT ... FOR UPDATE
            query.with_for_update().with_entities(models.Project.id).one()
