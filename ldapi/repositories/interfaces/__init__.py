from .project import IProjectRepository
from .user import IUserRepository
from .membership import IMembershipRepository
