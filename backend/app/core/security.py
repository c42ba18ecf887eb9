from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from app.core.config import Settings


class InvalidTokenError(Exception):
    """Token is malformed, carries a bad signature, or has expired"""


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """Identity reconstructed from a verified token. Never persisted."""

    user_id: str
    email: str


class PasswordHasher:
    """Salted one-way password digests (bcrypt)"""

    def __init__(self, rounds: int = 10):
        # bcrypt is slow by design to prevent brute-force attacks
        # Work factor is fixed per process; existing digests keep their own cost
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        """Hash a password using bcrypt"""
        # bcrypt generates a fresh salt and embeds it in the digest,
        # so the same password produces a different digest every time
        return self._context.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        """
        Verify a password against a digest.

        Returns False for a wrong password. A digest that is not a bcrypt hash
        raises ValueError - that is a programming error, not a failed login.
        """
        return self._context.verify(password, password_hash)


class TokenService:
    """Issues and verifies signed, expiring bearer tokens"""

    def __init__(self, secret_key: str, algorithm: str = "HS256", ttl: timedelta = timedelta(days=7)):
        if not secret_key:
            raise ValueError("Token signing key must not be empty")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.ttl = ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
            ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )

    def issue(self, user_id: str, email: str, issued_at: Optional[datetime] = None) -> str:
        """Create a JWT carrying the user id (``sub``) and email"""
        now = issued_at or datetime.now(timezone.utc)
        claims = {
            "sub": str(user_id),
            "email": email,
            "iat": now,
            "exp": now + self.ttl,
        }
        return jwt.encode(claims, self._secret_key, algorithm=self._algorithm)

    def verify(self, token: str) -> AuthenticatedIdentity:
        """Verify signature and expiry, returning the identity in the token"""
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except JWTError as exc:
            # Covers tampered signatures, expired tokens and structural garbage
            raise InvalidTokenError(str(exc)) from exc

        user_id = payload.get("sub")
        email = payload.get("email")
        if not isinstance(user_id, str) or not user_id or not isinstance(email, str):
            raise InvalidTokenError("Invalid token payload")
        return AuthenticatedIdentity(user_id=user_id, email=email)
