# security.py
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError

from config import Settings
from errors import InvalidToken
from schemas import TokenClaims

logger = logging.getLogger(__name__)

VERIFICATION_CODE_DIGITS = 6


class PasswordHasher:
    """Salted bcrypt hashing with a fixed work factor.

    Plaintexts are pre-hashed with SHA-256 (``bcrypt_sha256``) so bytes past
    bcrypt's 72-byte limit still count. Plain ``bcrypt`` hashes still verify.
    """

    def __init__(self, rounds: int = 12):
        self._context = CryptContext(
            schemes=["bcrypt_sha256", "bcrypt"],
            deprecated="auto",
            bcrypt_sha256__rounds=rounds,
            bcrypt__rounds=rounds,
        )

    def hash(self, plain_password: str) -> str:
        return self._context.hash(plain_password)

    def verify(self, plain_password: str, hashed_password: Optional[str]) -> bool:
        """Check a plaintext against a stored hash. Malformed hashes never match."""
        if not hashed_password:
            return False
        try:
            return self._context.verify(plain_password, hashed_password)
        except (ValueError, TypeError):
            logger.warning("Stored password hash could not be parsed")
            return False

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordHasher":
        return cls(rounds=settings.bcrypt_rounds)


class TokenIssuer:
    """Signs and verifies access tokens carrying ``{id, email, role}``."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", ttl: timedelta = timedelta(hours=24)):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.ttl = ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            secret_key=settings.secret_key,
            algorithm=settings.jwt_algorithm,
            ttl=timedelta(minutes=settings.access_token_expire_minutes),
        )

    def issue(self, claims: TokenClaims, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        to_encode = claims.model_dump(mode="json")
        to_encode.update({"iat": issued_at, "exp": issued_at + self.ttl})
        return jwt.encode(to_encode, self._secret_key, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Return the claims of a valid token, raise ``InvalidToken`` otherwise."""
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            raise InvalidToken("Token expired")
        except JWTError:
            raise InvalidToken("Invalid token")

        try:
            return TokenClaims.model_validate(payload)
        except ValidationError:
            raise InvalidToken("Invalid token")


def generate_code() -> str:
    """Random numeric verification code, zero padded."""
    return f"{secrets.randbelow(10 ** VERIFICATION_CODE_DIGITS):0{VERIFICATION_CODE_DIGITS}d}"
