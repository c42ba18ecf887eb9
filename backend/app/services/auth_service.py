"""
Register, login and profile use cases.

Each use case borrows a pooled connection only for the store calls it needs;
bcrypt work happens outside the connection so a slow hash never holds a pool
slot.
"""

import logging
from typing import Optional

from app.core.database import ConnectionManager
from app.core.errors import (
    AccountDisabledError,
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
)
from app.core.security import AuthenticatedIdentity, PasswordHasher, TokenService
from app.models.user import User
from app.schemas.auth import AuthData, UserResponse, normalize_email
from app.services.user_store import UserStore, user_store

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(
        self,
        db: ConnectionManager,
        hasher: PasswordHasher,
        tokens: TokenService,
        store: UserStore = user_store,
    ):
        self.db = db
        self.hasher = hasher
        self.tokens = tokens
        self.store = store
        # Compared against when the email is unknown, so both failure paths
        # pay the same bcrypt cost
        self._dummy_hash = hasher.hash("dummy-password-never-matches")

    def _auth_data(self, user: User) -> AuthData:
        token = self.tokens.issue(user.id, user.email)
        return AuthData(user=UserResponse.model_validate(user), token=token)

    def register(self, email: str, password: str, name: Optional[str] = None) -> AuthData:
        """Create an account and return it with a fresh token"""
        email = normalize_email(email)

        # Early check gives a clean 409 in the common case; the unique
        # constraint in store.create still guards the concurrent case
        existing = self.db.with_connection(lambda db: self.store.get_by_email(email, db))
        if existing is not None:
            raise ConflictError()

        password_hash = self.hasher.hash(password)
        user = self.db.with_connection(
            lambda db: self.store.create(email, password_hash, name, db)
        )
        logger.info(f"Registered user {user.id}")
        return self._auth_data(user)

    def login(self, email: str, password: str) -> AuthData:
        """Check credentials and return the user with a fresh token"""
        email = normalize_email(email)
        user = self.db.with_connection(lambda db: self.store.get_by_email(email, db))
        if user is None:
            self.hasher.verify(password, self._dummy_hash)
            raise InvalidCredentialsError()

        # Account state is not secret once the email matched
        if not user.is_active:
            logger.info(f"Login refused for disabled user {user.id}")
            raise AccountDisabledError()

        if not self.hasher.verify(password, user.password_hash):
            raise InvalidCredentialsError()

        logger.info(f"Login: {user.id}")
        return self._auth_data(user)

    def get_profile(self, identity: AuthenticatedIdentity) -> UserResponse:
        """Re-read the user behind a verified token"""
        user = self.db.with_connection(lambda db: self.store.get_by_id(identity.user_id, db))
        if user is None:
            # User removed after the token was issued
            raise NotFoundError("User not found")
        return UserResponse.model_validate(user)
