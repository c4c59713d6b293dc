from .project import Project, STATUS_ACTIVE, STATUS_ARCHIVED
from .user import User
from .role import Role
from .member import Member
