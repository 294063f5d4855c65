from models.base_model import Base, BaseModel
from models.db_storage import DBStorage, classes
from models.refresh_token import RefreshToken
from models.user import User
from models.yap import Yap

__all__ = ["Base", "BaseModel", "DBStorage", "classes", "RefreshToken", "User", "Yap"]
