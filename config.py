# config.py
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv


def _split_csv(raw: str) -> List[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, built once at startup and passed around explicitly."""

    secret_key: str
    database_url: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 24 * 60
    bcrypt_rounds: int = 12
    verification_code_ttl_minutes: int = 10
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    admin_email: Optional[str] = None
    admin_password: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()

        secret_key = os.getenv("SECRET_KEY")
        database_url = os.getenv("DATABASE_URL")
        if not secret_key or not database_url:
            raise RuntimeError("SECRET_KEY and DATABASE_URL must be defined.")

        return cls(
            secret_key=secret_key,
            database_url=database_url,
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440")),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "12")),
            verification_code_ttl_minutes=int(os.getenv("VERIFICATION_CODE_TTL_MINUTES", "10")),
            cors_origins=_split_csv(os.getenv("CORS_ORIGINS", "*")),
            admin_email=os.getenv("ADMIN_EMAIL") or None,
            admin_password=os.getenv("ADMIN_PASSWORD") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
