from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.core.errors import ConflictError
from app.models.user import User
from app.schemas.auth import normalize_email


class UserStore:
    """Persistence for user records. Emails are always looked up lowercase."""

    @staticmethod
    def get_by_email(email: str, db: Session) -> Optional[User]:
        return db.query(User).filter(User.email == normalize_email(email)).first()

    @staticmethod
    def get_by_id(user_id: str, db: Session) -> Optional[User]:
        return db.get(User, user_id)

    @staticmethod
    def create(email: str, password_hash: str, name: Optional[str], db: Session) -> User:
        """
        Insert a new active user.

        Raises ConflictError when the unique email constraint rejects the row,
        which is what happens when a concurrent registration won the race
        between the existence check and this insert.
        """
        user = User(
            email=normalize_email(email),
            password_hash=password_hash,
            name=name,
            is_active=True,
        )
        db.add(user)
        try:
            db.flush()
        except IntegrityError as exc:
            db.rollback()
            raise ConflictError() from exc
        # Load defaults (id, timestamps) onto the instance
        db.refresh(user)
        return user


user_store = UserStore()
