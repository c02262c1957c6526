from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime

from changegate.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=True)
    role = Column(String(50), nullable=False, index=True)  # ADMIN, MANAGER, USER
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<User {self.username} [{self.role}]>"
