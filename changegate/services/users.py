"""User lookups for the approval workflow."""

from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from changegate.core.errors import ConflictError, InvalidRequestError
from changegate.db.models import User


class UserDirectory:
    """Read access to users, plus registration for the HTTP layer."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def find_by_roles(self, roles: Iterable[str]) -> List[User]:
        """All users holding any of the given roles, ordered by ID."""
        roles = [str(getattr(role, "value", role)) for role in roles]
        if not roles:
            return []
        return self.db.query(User).filter(User.role.in_(roles)).order_by(User.id).all()

    def list_users(self) -> List[User]:
        return self.db.query(User).order_by(User.id).all()

    def create_user(self, username: str, role: str, email: Optional[str] = None) -> User:
        """
        Register a user.

        Raises:
            InvalidRequestError: If the username or role is blank
            ConflictError: If the username is taken
        """
        if not username or not username.strip():
            raise InvalidRequestError("Username is required")
        if not role or not role.strip():
            raise InvalidRequestError("Role is required")

        existing = self.db.query(User).filter(User.username == username).first()
        if existing:
            raise ConflictError(f"Username already exists: {username}")

        user = User(username=username.strip(), role=role.strip().upper(), email=email)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user
