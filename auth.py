# auth.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import Settings
from db import models as db_models
from db.database import get_db
from db.models import Role
from deps import get_password_hasher, get_settings, get_token_issuer, require_roles
from errors import NotAuthenticated, NotFound, ValidationConflict
from schemas import AuthResponse, Credentials, EmailRequest, Message, TokenClaims, UserPublic, VerifyCodeRequest
from security import PasswordHasher, TokenIssuer, generate_code

logger = logging.getLogger(__name__)

router = APIRouter()

INVALID_CREDENTIALS = "Invalid login or password"
# Wrong guesses allowed before the pending code is discarded
MAX_CODE_ATTEMPTS = 5


def build_auth_response(user: db_models.User, issuer: TokenIssuer) -> AuthResponse:
    """Public view of ``user`` plus a freshly signed token for it."""
    claims = TokenClaims(id=user.id, email=user.email, role=user.role)
    public = UserPublic.model_validate(user)
    return AuthResponse(**public.model_dump(), access_token=issuer.issue(claims))


def get_user_by_email(db: Session, email: str) -> Optional[db_models.User]:
    return db.query(db_models.User).filter(db_models.User.email == email).first()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


@router.post("/register", response_model=AuthResponse)
def register(
    credentials: Credentials,
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """Create a USER account and sign a token for it."""
    if get_user_by_email(db, credentials.email):
        raise ValidationConflict("Email is already in use")

    user = db_models.User(
        email=credentials.email,
        password=hasher.hash(credentials.password),
        role=Role.USER,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration for the same email
        db.rollback()
        raise ValidationConflict("Email is already in use")
    db.refresh(user)

    logger.info("Registered user %s (%s)", user.email, user.id)
    return build_auth_response(user, issuer)


@router.post("/login", response_model=AuthResponse)
def login(
    credentials: Credentials,
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    user = get_user_by_email(db, credentials.email)
    if user is None:
        logger.warning("Login failed: unknown email %s", credentials.email)
        raise NotAuthenticated(INVALID_CREDENTIALS)

    if not hasher.verify(credentials.password, user.password):
        logger.warning("Login failed: bad password for user %s", user.id)
        raise NotAuthenticated(INVALID_CREDENTIALS)

    logger.info("Login: %s (%s)", user.email, user.id)
    return build_auth_response(user, issuer)


@router.get("", response_model=AuthResponse)
def auth_me(
    identity: TokenClaims = Depends(require_roles(Role.USER, Role.ADMIN)),
    db: Session = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """Return the caller's profile with a renewed token."""
    user = db.get(db_models.User, identity.id)
    if user is None:
        raise NotFound("User not found")

    return build_auth_response(user, issuer)


# --- Verification codes ---

def _store_new_code(
    user: db_models.User,
    db: Session,
    hasher: PasswordHasher,
    settings: Settings,
) -> None:
    code = generate_code()
    user.verification_code = hasher.hash(code)
    user.code_expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.verification_code_ttl_minutes)
    user.failed_code_attempts = 0
    db.commit()
    # No mail transport yet; the code only goes to the log.
    logger.info("Verification code for %s: %s", user.email, code)


def _unverified_user(db: Session, email: str) -> db_models.User:
    user = get_user_by_email(db, email)
    if user is None:
        raise NotFound("User not found")
    if user.is_verified:
        raise ValidationConflict("User is already verified")
    return user


@router.post("/generateCode", response_model=Message)
def generate_user_code(
    body: EmailRequest,
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    settings: Settings = Depends(get_settings),
):
    user = _unverified_user(db, body.email)
    _store_new_code(user, db, hasher, settings)
    return Message(message="Verification code sent")


@router.post("/resend", response_model=Message)
def regenerate_user_code(
    body: EmailRequest,
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    settings: Settings = Depends(get_settings),
):
    user = _unverified_user(db, body.email)
    if user.verification_code is None:
        raise ValidationConflict("No verification code was requested")
    _store_new_code(user, db, hasher, settings)
    return Message(message="Verification code sent")


@router.post("/verifyCode", response_model=AuthResponse)
def verify_code(
    body: VerifyCodeRequest,
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    user = get_user_by_email(db, body.email)
    if user is None:
        raise NotFound("User not found")

    if user.verification_code is None or user.code_expires_at is None:
        raise ValidationConflict("Verification code expired")
    if _as_utc(user.code_expires_at) <= datetime.now(timezone.utc):
        raise ValidationConflict("Verification code expired")
    if not hasher.verify(body.code.strip(), user.verification_code):
        user.failed_code_attempts = (user.failed_code_attempts or 0) + 1
        if user.failed_code_attempts >= MAX_CODE_ATTEMPTS:
            user.verification_code = None
            user.code_expires_at = None
            db.commit()
            logger.warning("Discarded verification code for user %s after %d failed attempts", user.id, MAX_CODE_ATTEMPTS)
            raise ValidationConflict("Too many failed attempts, request a new code")
        db.commit()
        raise ValidationConflict("Invalid verification code")

    user.is_verified = True
    user.verification_code = None
    user.code_expires_at = None
    user.failed_code_attempts = 0
    db.commit()
    db.refresh(user)

    logger.info("Verified user %s (%s)", user.email, user.id)
    return build_auth_response(user, issuer)
