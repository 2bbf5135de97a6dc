"""
Persistence layer: SQLAlchemy models, the DBStorage engine/session wrapper
and the UserStore adapter used by the auth services.
"""
from models.base_model import Base, BaseModel
from models.user import User
from models.db_storage import DBStorage
from models.user_store import DuplicateIdentityError, UserStore

__all__ = ["Base", "BaseModel", "User", "DBStorage", "DuplicateIdentityError", "UserStore"]
