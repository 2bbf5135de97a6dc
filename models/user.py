from sqlalchemy import Column, String, Text

from models.base_model import Base, BaseModel


class User(BaseModel, Base):
    __tablename__ = "users"

    username = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=False, index=True)
    avatar_url = Column(String(1024), nullable=False)
    cover_image_url = Column(String(1024), nullable=True, default="")
    password_hash = Column(String(255), nullable=False)
    # Only one refresh token is valid per user at a time
    refresh_token = Column(Text, nullable=True)

    def __repr__(self):
        return f"<User {self.username}>"
